import re
from datetime import datetime

from inkgenius.core.exceptions import BadRequestError
from inkgenius.core.logging import get_logger
from inkgenius.models.subscriber import Subscriber

log = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


async def subscribe(
    email: str,
    source: str | None = None,
    page_url: str | None = None,
    referrer: str | None = None,
) -> tuple[Subscriber, bool]:
    """Upsert by email. Returns (subscriber, created)."""
    email = (email or "").strip().lower()
    if not email:
        raise BadRequestError("Email is required")
    if not is_valid_email(email):
        raise BadRequestError("Invalid email format")

    now = datetime.utcnow()
    subscriber = await Subscriber.find_one(Subscriber.email == email)
    if subscriber:
        subscriber.source = source or subscriber.source
        subscriber.page_url = page_url or subscriber.page_url
        subscriber.referrer = referrer or subscriber.referrer
        subscriber.updated_at = now
        await subscriber.save()
        log.info("subscriber_updated", email=email)
        return subscriber, False

    subscriber = Subscriber(
        email=email,
        source=source or "unknown",
        page_url=page_url or "unknown",
        referrer=referrer or "direct",
    )
    await subscriber.insert()
    log.info("subscriber_created", email=email, source=subscriber.source)
    return subscriber, True
