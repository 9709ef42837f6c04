"""Credits ledger against an in-memory database."""

import pytest

from inkgenius.core.exceptions import BadRequestError, InsufficientCreditsError
from inkgenius.models.user import User
from inkgenius.models.user_credits import CreditOperationType, CreditTransaction
from inkgenius.services import credits as credits_service


async def test_new_account_gets_signup_bonus(db):
    account, created = await credits_service.create_user_credits("u1", "Test", "Test@Example.com")
    assert created
    assert account.credits == 100
    assert account.user_email == "test@example.com"
    txs = await credits_service.get_user_transactions("u1")
    assert len(txs) == 1
    assert txs[0].type == CreditOperationType.BONUS
    assert txs[0].source == "signup"
    assert txs[0].balance_after == 100


async def test_empty_account_has_no_ledger_row(db):
    account, created = await credits_service.create_user_credits("u2", "", "buyer@example.com", bonus=0)
    assert created
    assert account.credits == 0
    assert account.last_earned_at is None
    assert await credits_service.count_user_transactions("u2") == 0


async def test_create_is_idempotent(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    account, created = await credits_service.create_user_credits("u1", "Test", "test@example.com")
    assert not created
    assert account.credits == 100
    assert await credits_service.count_user_transactions("u1") == 1


async def test_add_credits(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    account = await credits_service.add_credits("u1", "test@example.com", 50, "Promo", source="admin")
    assert account.credits == 150
    assert account.last_earned_at is not None
    assert await credits_service.get_balance("u1") == 150


async def test_add_credits_without_account_returns_none(db):
    assert await credits_service.add_credits("missing", "x@example.com", 10, "Promo") is None
    assert await CreditTransaction.find_all().count() == 0


async def test_non_positive_amount_rejected(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    with pytest.raises(BadRequestError):
        await credits_service.add_credits("u1", "test@example.com", 0, "Nothing")
    with pytest.raises(BadRequestError):
        await credits_service.spend_credits("u1", "test@example.com", -5, "Nothing")


async def test_spend_credits(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    account = await credits_service.spend_credits("u1", "test@example.com", 30, "Text to image")
    assert account.credits == 70
    latest = (await credits_service.get_user_transactions("u1", type=CreditOperationType.SPEND))[0]
    assert latest.type == CreditOperationType.SPEND
    assert latest.amount == -30
    assert latest.balance_after == 70


async def test_overspend_raises_and_changes_nothing(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    with pytest.raises(InsufficientCreditsError) as exc_info:
        await credits_service.spend_credits("u1", "test@example.com", 101, "Too much")
    assert exc_info.value.status_code == 402
    assert exc_info.value.details == {"current_credits": 100, "required_credits": 101}
    assert await credits_service.get_balance("u1") == 100
    assert await credits_service.count_user_transactions("u1") == 1


async def test_spend_exact_balance(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    account = await credits_service.spend_credits("u1", "test@example.com", 100, "All in")
    assert account.credits == 0


async def test_refund_is_tagged(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    await credits_service.spend_credits("u1", "test@example.com", 10, "Gen", source="image_generation")
    account = await credits_service.refund_credits("u1", "test@example.com", 10, "Refund", source="image_generation")
    assert account.credits == 100
    refunds = await credits_service.get_user_transactions("u1", type=CreditOperationType.REFUND)
    assert len(refunds) == 1
    assert refunds[0].amount == 10


async def test_transactions_filter_by_source(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    await credits_service.spend_credits("u1", "test@example.com", 10, "Gen", source="image_generation")
    await credits_service.add_credits("u1", "test@example.com", 5, "Admin", source="admin")
    gens = await credits_service.get_user_transactions("u1", source="image_generation")
    assert [t.description for t in gens] == ["Gen"]
    assert await credits_service.count_user_transactions("u1", source="admin") == 1


async def test_lookup_by_email_is_case_insensitive(db):
    await credits_service.create_user_credits("u1", "Test", "test@example.com")
    account = await credits_service.get_user_credits_by_email("  TEST@example.com ")
    assert account is not None
    assert account.user_id == "u1"


async def test_initialize_all_users(db):
    first = User(email="a@example.com", name="A")
    second = User(email="b@example.com", name="B")
    await first.insert()
    await second.insert()
    await credits_service.ensure_user_credits(first)

    out = await credits_service.initialize_all_users()
    assert out["summary"] == {"total": 2, "created": 1, "skipped": 1, "errors": 0}
    statuses = {r["email"]: r["status"] for r in out["results"]}
    assert statuses == {"a@example.com": "already_exists", "b@example.com": "created"}
