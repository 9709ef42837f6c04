from datetime import datetime
from enum import Enum
from typing import Any

from beanie import Document
from pydantic import Field


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Payment(Document):
    user_id: str
    user_email: str
    package_id: str
    package_name: str
    credits: int
    bonus_credits: int = 0
    amount: float
    currency: str = "USD"
    status: PaymentStatus = PaymentStatus.PENDING
    whop_payment_id: str | None = None
    whop_checkout_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None

    class Settings:
        name = "payments"
        indexes = [
            [("user_id", 1), ("created_at", -1)],
            [("whop_payment_id", 1)],
        ]
