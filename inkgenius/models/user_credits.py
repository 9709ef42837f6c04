from datetime import datetime
from enum import Enum
from typing import Any

from beanie import Document, Indexed
from pydantic import Field


class CreditOperationType(str, Enum):
    EARN = "earn"
    SPEND = "spend"
    BONUS = "bonus"
    REFUND = "refund"


class UserCredits(Document):
    """Current balance per user. Mutated only through $inc updates."""
    user_id: Indexed(str, unique=True)
    user_name: str = ""
    user_email: Indexed(str)
    credits: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    last_earned_at: datetime | None = None
    last_spent_at: datetime | None = None

    class Settings:
        name = "user_credits"


class CreditTransaction(Document):
    user_id: str
    user_email: str
    type: CreditOperationType
    amount: int  # positive = credit, negative = debit
    balance_after: int | None = None
    description: str
    source: str | None = None  # signup, purchase, image_generation, admin
    related_id: str | None = None  # payment id, generation request id, etc.
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_transactions"
        indexes = [
            [("user_id", 1), ("created_at", -1)],
            [("user_id", 1), ("source", 1), ("type", 1)],
        ]
