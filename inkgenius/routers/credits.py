from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from inkgenius.core.exceptions import NotFoundError
from inkgenius.core.pagination import page_info, paginate
from inkgenius.deps import get_current_user, require_admin
from inkgenius.models.user import User
from inkgenius.models.user_credits import CreditOperationType
from inkgenius.services import credits as credits_service

router = APIRouter()


class AdjustCreditsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_email: str = Field(alias="userEmail")
    amount: int = Field(gt=0)
    description: str | None = None


@router.get("/me")
async def credits_me(user: User = Depends(get_current_user)):
    """Balance and account for the signed-in user; opens the account if missing."""
    account = await credits_service.ensure_user_credits(user)
    return {"credits": credits_service.serialize_credits(account), "pricing": credits_service.get_pricing()}


@router.get("/transactions")
async def credits_transactions(
    user: User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    source: str | None = None,
    type: CreditOperationType | None = None,
):
    """Return transactions for current user (newest first)."""
    limit, offset = paginate(limit, offset)
    user_id = str(user.id)
    transactions = await credits_service.get_user_transactions(user_id, limit, offset, source=source, type=type)
    total = await credits_service.count_user_transactions(user_id, source=source, type=type)
    return {
        "transactions": [credits_service.serialize_transaction(t) for t in transactions],
        "pagination": page_info(total, limit, offset),
    }


async def _account_by_email(email: str):
    account = await credits_service.get_user_credits_by_email(email)
    if not account:
        raise NotFoundError("User credits not found")
    return account


@router.get("/by-email/{email}")
async def credits_by_email(email: str, admin: User = Depends(require_admin)):
    """Admin: balance for any user."""
    account = await _account_by_email(email)
    return {"credits": credits_service.serialize_credits(account)}


@router.get("/transactions/{email}")
async def credits_transactions_by_email(
    email: str,
    admin: User = Depends(require_admin),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Admin: transaction log for any user."""
    account = await _account_by_email(email)
    transactions = await credits_service.get_user_transactions(account.user_id, limit, offset)
    total = await credits_service.count_user_transactions(account.user_id)
    return {
        "transactions": [credits_service.serialize_transaction(t) for t in transactions],
        "pagination": page_info(total, limit, offset),
    }


@router.post("/add")
async def credits_add(body: AdjustCreditsRequest, admin: User = Depends(require_admin)):
    """Admin: grant credits."""
    account = await _account_by_email(body.user_email)
    updated = await credits_service.add_credits(
        account.user_id,
        account.user_email,
        body.amount,
        body.description or "Admin credit adjustment",
        source="admin",
        related_id=str(admin.id),
    )
    if not updated:
        raise NotFoundError("User credits not found")
    return {"credits": credits_service.serialize_credits(updated)}


@router.post("/spend")
async def credits_spend(body: AdjustCreditsRequest, admin: User = Depends(require_admin)):
    """Admin: debit credits; 402 when the balance does not cover it."""
    account = await _account_by_email(body.user_email)
    updated = await credits_service.spend_credits(
        account.user_id,
        account.user_email,
        body.amount,
        body.description or "Admin credit deduction",
        source="admin",
        related_id=str(admin.id),
    )
    return {"credits": credits_service.serialize_credits(updated)}


@router.post("/initialize/{email}")
async def credits_initialize(email: str, admin: User = Depends(require_admin)):
    """Admin: open the credits account for an existing user."""
    user = await User.find_one(User.email == email.strip().lower())
    if not user:
        raise NotFoundError("User not found")
    account, created = await credits_service.create_user_credits(str(user.id), user.name, user.email)
    return {"created": created, "credits": credits_service.serialize_credits(account)}


@router.post("/initialize-all")
async def credits_initialize_all(admin: User = Depends(require_admin)):
    """Admin: open accounts for every user that lacks one."""
    return await credits_service.initialize_all_users()
