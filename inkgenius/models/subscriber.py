from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class Subscriber(Document):
    email: Indexed(str, unique=True)
    source: str = "unknown"
    page_url: str = "unknown"
    referrer: str = "direct"
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "subscribers"
