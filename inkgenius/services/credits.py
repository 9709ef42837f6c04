"""Credits ledger: per-user balance with atomic $inc updates and an append-only transaction log."""

from datetime import datetime
from typing import Any

from beanie import UpdateResponse
from beanie.operators import Inc, Set

from inkgenius.core.config import get_settings
from inkgenius.core.exceptions import BadRequestError, InsufficientCreditsError
from inkgenius.core.logging import get_logger
from inkgenius.models.user import User
from inkgenius.models.user_credits import CreditOperationType, CreditTransaction, UserCredits

log = get_logger(__name__)


async def create_user_credits(
    user_id: str,
    user_name: str,
    user_email: str,
    bonus: int | None = None,
) -> tuple[UserCredits, bool]:
    """
    Create the credits account for a user, by default with the new-user bonus.
    Returns (account, created). An existing account is returned untouched.
    bonus=0 opens an empty account with no ledger row.
    """
    existing = await get_user_credits(user_id)
    if existing:
        return existing, False

    user_email = user_email.strip().lower()
    if bonus is None:
        bonus = get_settings().new_user_bonus_credits
    now = datetime.utcnow()
    account = UserCredits(
        user_id=user_id,
        user_name=user_name,
        user_email=user_email,
        credits=bonus,
        created_at=now,
        updated_at=now,
        last_earned_at=now if bonus else None,
    )
    await account.insert()
    log.info("credits_account_created", user_id=user_id, email=user_email, credits=bonus)
    if bonus > 0:
        await add_credit_transaction(
            user_id,
            user_email,
            CreditOperationType.BONUS,
            bonus,
            "New user signup bonus",
            balance_after=bonus,
            source="signup",
        )
    return account, True


async def get_user_credits(user_id: str) -> UserCredits | None:
    return await UserCredits.find_one(UserCredits.user_id == user_id)


async def get_user_credits_by_email(user_email: str) -> UserCredits | None:
    return await UserCredits.find_one(UserCredits.user_email == user_email.strip().lower())


async def get_balance(user_id: str) -> int:
    """Return current balance for user (0 if no account)."""
    account = await get_user_credits(user_id)
    return account.credits if account else 0


async def ensure_user_credits(user: User) -> UserCredits:
    account, _ = await create_user_credits(str(user.id), user.name, user.email)
    return account


async def add_credits(
    user_id: str,
    user_email: str,
    amount: int,
    description: str,
    type: CreditOperationType = CreditOperationType.EARN,
    source: str | None = None,
    related_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> UserCredits | None:
    """Increment balance and log the transaction. Returns None when the user has no credits account."""
    if amount <= 0:
        raise BadRequestError("Amount must be positive")
    now = datetime.utcnow()
    account = await UserCredits.find_one(UserCredits.user_id == user_id).update(
        Inc({UserCredits.credits: amount}),
        Set({UserCredits.updated_at: now, UserCredits.last_earned_at: now}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if not account:
        log.warning("credits_account_missing", user_id=user_id, amount=amount)
        return None
    await add_credit_transaction(
        user_id,
        user_email,
        type,
        amount,
        description,
        balance_after=account.credits,
        source=source,
        related_id=related_id,
        metadata=metadata,
    )
    log.info("credits_added", user_id=user_id, amount=amount, type=type.value, balance=account.credits)
    return account


async def spend_credits(
    user_id: str,
    user_email: str,
    amount: int,
    description: str,
    source: str | None = None,
    related_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> UserCredits:
    """
    Debit the balance only if it covers amount; the guard and the decrement are one update.
    Raises InsufficientCreditsError (nothing is written) when it does not.
    """
    if amount <= 0:
        raise BadRequestError("Amount must be positive")
    now = datetime.utcnow()
    account = await UserCredits.find_one(
        UserCredits.user_id == user_id,
        UserCredits.credits >= amount,
    ).update(
        Inc({UserCredits.credits: -amount}),
        Set({UserCredits.updated_at: now, UserCredits.last_spent_at: now}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if not account:
        current = await get_balance(user_id)
        log.info("credits_insufficient", user_id=user_id, current=current, required=amount)
        raise InsufficientCreditsError(current_credits=current, required_credits=amount)
    await add_credit_transaction(
        user_id,
        user_email,
        CreditOperationType.SPEND,
        -amount,
        description,
        balance_after=account.credits,
        source=source,
        related_id=related_id,
        metadata=metadata,
    )
    log.info("credits_spent", user_id=user_id, amount=amount, balance=account.credits)
    return account


async def refund_credits(
    user_id: str,
    user_email: str,
    amount: int,
    description: str,
    source: str | None = None,
    related_id: str | None = None,
) -> UserCredits | None:
    return await add_credits(
        user_id,
        user_email,
        amount,
        description,
        type=CreditOperationType.REFUND,
        source=source,
        related_id=related_id,
    )


async def add_credit_transaction(
    user_id: str,
    user_email: str,
    type: CreditOperationType,
    amount: int,
    description: str,
    balance_after: int | None = None,
    source: str | None = None,
    related_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> CreditTransaction:
    transaction = CreditTransaction(
        user_id=user_id,
        user_email=user_email,
        type=type,
        amount=amount,
        balance_after=balance_after,
        description=description,
        source=source,
        related_id=related_id,
        metadata=metadata or {},
    )
    await transaction.insert()
    return transaction


def _transactions_query(user_id: str, source: str | None, type: CreditOperationType | None):
    filters = [CreditTransaction.user_id == user_id]
    if source:
        filters.append(CreditTransaction.source == source)
    if type:
        filters.append(CreditTransaction.type == type)
    return CreditTransaction.find(*filters)


async def get_user_transactions(
    user_id: str,
    limit: int = 50,
    offset: int = 0,
    source: str | None = None,
    type: CreditOperationType | None = None,
) -> list[CreditTransaction]:
    """Newest first."""
    return (
        await _transactions_query(user_id, source, type)
        .sort(-CreditTransaction.created_at)
        .skip(offset)
        .limit(limit)
        .to_list()
    )


async def count_user_transactions(
    user_id: str,
    source: str | None = None,
    type: CreditOperationType | None = None,
) -> int:
    return await _transactions_query(user_id, source, type).count()


async def initialize_all_users() -> dict[str, Any]:
    """Create credits accounts for every user that lacks one."""
    users = await User.find_all().to_list()
    log.info("credits_initialize_all", users=len(users))
    results = []
    created = skipped = errors = 0
    for user in users:
        try:
            account, was_created = await create_user_credits(str(user.id), user.name or "Unknown User", user.email)
        except Exception as e:
            errors += 1
            log.warning("credits_initialize_failed", user_id=str(user.id), error=str(e))
            results.append({"email": user.email, "status": "error", "error": str(e)})
            continue
        if was_created:
            created += 1
        else:
            skipped += 1
        results.append({
            "email": user.email,
            "status": "created" if was_created else "already_exists",
            "credits": account.credits,
        })
    return {
        "summary": {"total": len(users), "created": created, "skipped": skipped, "errors": errors},
        "results": results,
    }


def serialize_credits(account: UserCredits) -> dict[str, Any]:
    return {
        "user_id": account.user_id,
        "user_name": account.user_name,
        "user_email": account.user_email,
        "credits": account.credits,
        "created_at": account.created_at.isoformat(),
        "updated_at": account.updated_at.isoformat(),
        "last_earned_at": account.last_earned_at.isoformat() if account.last_earned_at else None,
        "last_spent_at": account.last_spent_at.isoformat() if account.last_spent_at else None,
    }


def serialize_transaction(t: CreditTransaction) -> dict[str, Any]:
    return {
        "id": str(t.id),
        "type": t.type.value,
        "amount": t.amount,
        "balance_after": t.balance_after,
        "description": t.description,
        "source": t.source,
        "related_id": t.related_id,
        "metadata": t.metadata,
        "created_at": t.created_at.isoformat(),
    }


def get_pricing() -> dict[str, int]:
    s = get_settings()
    return {
        "text_to_image": s.credits_per_text_to_image,
        "image_to_image": s.credits_per_image_to_image,
        "new_user_bonus": s.new_user_bonus_credits,
    }
