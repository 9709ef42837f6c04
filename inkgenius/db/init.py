import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from inkgenius.core.config import get_settings
from inkgenius.models import CreditTransaction, Payment, Subscriber, User, UserCredits, WebhookEvent

DOCUMENT_MODELS = [
    User,
    UserCredits,
    CreditTransaction,
    Payment,
    WebhookEvent,
    Subscriber,
]

_client: AsyncIOMotorClient | None = None


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


async def init_db(client: AsyncIOMotorClient | None = None) -> None:
    global _client
    settings = get_settings()
    if client is None:
        kwargs = {}
        if _use_tls(settings.mongodb_uri):
            kwargs["tlsCAFile"] = certifi.where()
            kwargs["tlsDisableOCSPEndpointCheck"] = True
        client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
    _client = client
    database = client[settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)


async def close_db() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
