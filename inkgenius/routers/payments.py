from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from inkgenius.core.config import CREDIT_PACKAGES, get_settings
from inkgenius.core.exceptions import BadRequestError, NotFoundError
from inkgenius.deps import get_current_user
from inkgenius.models.user import User
from inkgenius.services import payments as payments_service

router = APIRouter()


class CreatePaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    package_id: str = Field(alias="packageId")
    success_url: str | None = Field(default=None, alias="successUrl")
    cancel_url: str | None = Field(default=None, alias="cancelUrl")


@router.get("/packages")
async def list_packages():
    return {"packages": [p.model_dump() for p in CREDIT_PACKAGES]}


@router.post("/create")
async def create_payment(body: CreatePaymentRequest, user: User = Depends(get_current_user)):
    """Create a pending payment and its checkout; the frontend opens checkout_url."""
    payment = await payments_service.create_payment(user, body.package_id, body.success_url, body.cancel_url)
    checkout = await payments_service.create_checkout(payment)
    return {
        "payment": payments_service.serialize_payment(payment),
        "checkout_url": checkout["checkout_url"],
        "checkout_metadata": checkout["metadata"],
        "company_id": checkout["company_id"],
    }


@router.get("/history")
async def payment_history(
    user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
):
    payments = await payments_service.get_user_payments(str(user.id), limit)
    return {"payments": [payments_service.serialize_payment(p) for p in payments]}


@router.post("/webhook/whop")
async def whop_webhook(request: Request, whop_signature: str | None = Header(None, alias="Whop-Signature")):
    """Whop webhook: verified by HMAC, completion credits the payment once."""
    body = await request.body()
    event = await payments_service.handle_webhook(body, whop_signature)
    return {"status": event.status, "event_id": event.event_id}


@router.post("/test/complete/{payment_id}")
async def test_complete_payment(payment_id: str, user: User = Depends(get_current_user)):
    """Development only: complete a pending payment without a processor round trip."""
    if get_settings().is_production:
        raise NotFoundError(f"Cannot POST /api/payments/test/complete/{payment_id}")
    payment = await payments_service.get_payment_for_user(payment_id, str(user.id))
    completed = await payments_service.complete_payment(payment, whop_payment_id=f"test_{payment_id}")
    refreshed = await payments_service.get_payment(payment_id)
    return {"completed": completed, "payment": payments_service.serialize_payment(refreshed)}


@router.get("/{payment_id}")
async def get_payment(payment_id: str, user: User = Depends(get_current_user)):
    payment = await payments_service.get_payment_for_user(payment_id, str(user.id))
    return {"payment": payments_service.serialize_payment(payment)}


@router.post("/{payment_id}/cancel")
async def cancel_payment(payment_id: str, user: User = Depends(get_current_user)):
    """Cancel a pending payment; 400 once it has left pending."""
    cancelled = await payments_service.cancel_payment(payment_id, str(user.id))
    if not cancelled:
        raise BadRequestError("Payment cannot be cancelled")
    return {"status": "cancelled"}
