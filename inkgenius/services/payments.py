"""Credit package purchases through Whop: payment records, checkout metadata, webhook completion."""

import json
from datetime import datetime
from typing import Any

from beanie import PydanticObjectId, UpdateResponse
from beanie.operators import In, Set

from inkgenius.core.config import get_credit_package, get_settings
from inkgenius.core.exceptions import BadRequestError, ForbiddenError, NotFoundError, ServiceUnavailableError
from inkgenius.core.logging import get_logger
from inkgenius.core.security import verify_whop_webhook
from inkgenius.models.payment import Payment, PaymentStatus
from inkgenius.models.user import User
from inkgenius.models.webhook_event import WebhookEvent
from inkgenius.services import credits as credits_service

log = get_logger(__name__)

COMPLETION_EVENTS = ("payment.completed", "checkout.completed", "payment.succeeded")
FAILURE_EVENTS = ("payment.failed", "checkout.failed")
REFUND_EVENTS = ("payment.refunded",)

# A failed payment can still be captured on retry; cancelled and refunded are terminal.
COMPLETABLE_STATUSES = (PaymentStatus.PENDING, PaymentStatus.FAILED)


async def create_payment(
    user: User,
    package_id: str,
    success_url: str | None = None,
    cancel_url: str | None = None,
) -> Payment:
    package = get_credit_package(package_id)
    if not package:
        raise BadRequestError("Invalid package ID", details={"package_id": package_id})
    site_url = get_settings().site_url.rstrip("/")
    payment = Payment(
        user_id=str(user.id),
        user_email=user.email,
        package_id=package.id,
        package_name=package.name,
        credits=package.credits,
        bonus_credits=0,
        amount=package.price,
        currency=package.currency,
        metadata={
            "success_url": success_url or f"{site_url}/payment/success",
            "cancel_url": cancel_url or f"{site_url}/payment/cancel",
        },
    )
    await payment.insert()
    log.info("payment_created", payment_id=str(payment.id), user_id=payment.user_id, package_id=package.id)
    return payment


def checkout_metadata(payment: Payment) -> dict[str, str]:
    """Metadata attached to the checkout; Whop echoes it back in the webhook."""
    return {
        "payment_id": str(payment.id),
        "user_id": payment.user_id,
        "user_email": payment.user_email,
        "package_id": payment.package_id,
        "credits": str(payment.credits),
        "bonus_credits": str(payment.bonus_credits),
    }


async def create_checkout(payment: Payment) -> dict[str, Any]:
    """Attach a checkout URL to the payment and return what the embedded checkout needs."""
    settings = get_settings()
    checkout_url = f"{settings.whop_checkout_base_url.rstrip('/')}/{payment.id}"
    metadata = checkout_metadata(payment)
    payment.whop_checkout_url = checkout_url
    payment.metadata = {**payment.metadata, "checkout": metadata}
    payment.updated_at = datetime.utcnow()
    await payment.save()
    log.info("checkout_created", payment_id=str(payment.id), checkout_url=checkout_url)
    return {"checkout_url": checkout_url, "company_id": settings.whop_company_id or None, "metadata": metadata}


def _object_id(value: str | None) -> PydanticObjectId | None:
    if not value:
        return None
    try:
        return PydanticObjectId(value)
    except Exception:
        return None


async def get_payment(payment_id: str) -> Payment | None:
    oid = _object_id(payment_id)
    return await Payment.get(oid) if oid else None


async def get_payment_for_user(payment_id: str, user_id: str) -> Payment:
    payment = await get_payment(payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    if payment.user_id != user_id:
        raise ForbiddenError("Access denied")
    return payment


async def find_payment(payment_id: str | None = None, whop_payment_id: str | None = None) -> Payment | None:
    """Look up by our id first, then by the processor's payment id."""
    payment = await get_payment(payment_id) if payment_id else None
    if not payment and whop_payment_id:
        payment = await Payment.find_one(Payment.whop_payment_id == whop_payment_id)
    return payment


async def get_user_payments(user_id: str, limit: int = 20) -> list[Payment]:
    return await Payment.find(Payment.user_id == user_id).sort(-Payment.created_at).limit(limit).to_list()


async def complete_payment(payment: Payment, whop_payment_id: str | None = None) -> bool:
    """
    Mark the payment completed and grant its credits.
    The status flip is a single conditional update, so a payment is only ever credited once;
    an already-completed payment returns True without touching the ledger.
    """
    now = datetime.utcnow()
    fields = {Payment.status: PaymentStatus.COMPLETED, Payment.completed_at: now, Payment.updated_at: now}
    if whop_payment_id:
        fields[Payment.whop_payment_id] = whop_payment_id
    previous_status = payment.status
    updated = await Payment.find_one(
        Payment.id == payment.id,
        In(Payment.status, list(COMPLETABLE_STATUSES)),
    ).update(Set(fields), response_type=UpdateResponse.NEW_DOCUMENT)

    if not updated:
        current = await Payment.get(payment.id)
        if current and current.status == PaymentStatus.COMPLETED:
            log.info("payment_already_completed", payment_id=str(payment.id))
            return True
        log.warning(
            "payment_not_completable",
            payment_id=str(payment.id),
            status=current.status.value if current else None,
        )
        return False

    total_credits = updated.credits + updated.bonus_credits
    description = f"Purchased credit package: {updated.package_name}"
    try:
        account = await credits_service.add_credits(
            updated.user_id,
            updated.user_email,
            total_credits,
            description,
            source="purchase",
            related_id=str(updated.id),
        )
        if account is None:
            await credits_service.create_user_credits(updated.user_id, "", updated.user_email, bonus=0)
            account = await credits_service.add_credits(
                updated.user_id,
                updated.user_email,
                total_credits,
                description,
                source="purchase",
                related_id=str(updated.id),
            )
    except Exception:
        await Payment.find_one(Payment.id == updated.id).update(
            Set({Payment.status: previous_status, Payment.completed_at: None, Payment.updated_at: datetime.utcnow()})
        )
        log.exception("payment_credit_grant_failed", payment_id=str(updated.id))
        raise

    log.info(
        "payment_completed",
        payment_id=str(updated.id),
        user_id=updated.user_id,
        credits=total_credits,
        balance=account.credits if account else None,
    )
    return True


async def complete_payment_by_metadata(metadata: dict[str, Any], whop_payment_id: str | None = None) -> bool:
    """Complete using the checkout metadata echoed back by the processor."""
    payment = await find_payment(metadata.get("payment_id"), whop_payment_id)
    if not payment:
        log.warning("payment_not_found", payment_id=metadata.get("payment_id"), whop_payment_id=whop_payment_id)
        return False
    meta_user = metadata.get("user_id")
    if meta_user and meta_user != payment.user_id:
        # The stored record decides who gets the credits.
        log.warning("payment_metadata_user_mismatch", payment_id=str(payment.id), metadata_user_id=meta_user)
    return await complete_payment(payment, whop_payment_id)


async def _transition(payment: Payment, to_status: PaymentStatus, from_statuses: tuple[PaymentStatus, ...]) -> bool:
    updated = await Payment.find_one(
        Payment.id == payment.id,
        In(Payment.status, list(from_statuses)),
    ).update(
        Set({Payment.status: to_status, Payment.updated_at: datetime.utcnow()}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated:
        log.info("payment_status_changed", payment_id=str(payment.id), status=to_status.value)
    return updated is not None


async def fail_payment(payment: Payment) -> bool:
    return await _transition(payment, PaymentStatus.FAILED, (PaymentStatus.PENDING,))


async def refund_payment(payment: Payment) -> bool:
    """Status only; credits already granted stay on the balance."""
    return await _transition(payment, PaymentStatus.REFUNDED, (PaymentStatus.COMPLETED,))


async def cancel_payment(payment_id: str, user_id: str) -> bool:
    payment = await get_payment_for_user(payment_id, user_id)
    return await _transition(payment, PaymentStatus.CANCELLED, (PaymentStatus.PENDING,))


async def handle_webhook(payload: bytes, signature: str | None) -> WebhookEvent:
    """Verify HMAC, record the event, and apply it to the matching payment."""
    settings = get_settings()
    if not settings.whop_webhook_secret:
        raise ServiceUnavailableError("Webhook secret not configured")
    if not verify_whop_webhook(payload, signature, settings.whop_webhook_secret):
        log.warning("webhook_invalid_signature")
        raise BadRequestError("Invalid webhook signature")
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BadRequestError("Invalid webhook payload") from e
    if not isinstance(data, dict):
        raise BadRequestError("Invalid webhook payload")

    event_type = _as_str(data.get("type"))
    event_id = _as_str(data.get("id"))
    event_data = data.get("data") if isinstance(data.get("data"), dict) else {}
    metadata = event_data.get("metadata") if isinstance(event_data.get("metadata"), dict) else {}

    if event_id:
        seen = await WebhookEvent.find_one(
            WebhookEvent.provider == "whop",
            WebhookEvent.event_id == event_id,
            WebhookEvent.status == "processed",
        )
        if seen:
            log.info("webhook_duplicate", event_id=event_id, event_type=event_type)
            return seen

    event = WebhookEvent(event_type=event_type, event_id=event_id, payload=data)
    await event.insert()
    log.info("webhook_received", event_id=event_id, event_type=event_type)

    if event_type not in COMPLETION_EVENTS + FAILURE_EVENTS + REFUND_EVENTS:
        return await _finish(event, "ignored", reason="unhandled event type")

    whop_payment_id = _as_str(event_data.get("id"))
    payment = await find_payment(_as_str(metadata.get("payment_id")), whop_payment_id)
    if not payment:
        log.warning("webhook_unprocessed", event_id=event_id, event_type=event_type, metadata=metadata)
        return await _finish(event, "unprocessed", reason="payment could not be identified")
    event.payment_id = str(payment.id)

    try:
        if event_type in COMPLETION_EVENTS:
            ok = await complete_payment_by_metadata({**metadata, "payment_id": str(payment.id)}, whop_payment_id)
        elif event_type in FAILURE_EVENTS:
            ok = await fail_payment(payment)
        else:
            ok = await refund_payment(payment)
    except Exception as e:
        await _finish(event, "failed", reason=str(e))
        raise

    if ok:
        return await _finish(event, "processed")
    current = await Payment.get(payment.id)
    status = current.status.value if current else "missing"
    return await _finish(event, "unprocessed", reason=f"transition not allowed from status {status}")


def _as_str(value: Any) -> str | None:
    """Processor ids may arrive as JSON numbers; models store strings."""
    return str(value) if value is not None else None


async def _finish(event: WebhookEvent, status: str, reason: str | None = None) -> WebhookEvent:
    event.status = status
    event.reason = reason
    await event.save()
    return event


def serialize_payment(p: Payment) -> dict[str, Any]:
    return {
        "id": str(p.id),
        "package_id": p.package_id,
        "package_name": p.package_name,
        "credits": p.credits,
        "bonus_credits": p.bonus_credits,
        "amount": p.amount,
        "currency": p.currency,
        "status": p.status.value,
        "whop_payment_id": p.whop_payment_id,
        "whop_checkout_url": p.whop_checkout_url,
        "created_at": p.created_at.isoformat(),
        "updated_at": p.updated_at.isoformat(),
        "completed_at": p.completed_at.isoformat() if p.completed_at else None,
    }
