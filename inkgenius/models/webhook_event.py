from datetime import datetime
from typing import Any

from beanie import Document
from pydantic import Field


class WebhookEvent(Document):
    """Every inbound processor webhook, with what we did about it."""
    provider: str = "whop"
    event_type: str | None = None
    event_id: str | None = None
    status: str = "received"  # received | processed | unprocessed | ignored | failed
    reason: str | None = None
    payment_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "webhook_events"
        indexes = [
            [("provider", 1), ("event_id", 1)],
            [("status", 1), ("created_at", -1)],
        ]
