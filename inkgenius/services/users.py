from datetime import datetime

from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from inkgenius.core.config import get_settings
from inkgenius.core.exceptions import BadRequestError, ServiceUnavailableError, UnauthorizedError
from inkgenius.core.logging import get_logger
from inkgenius.models.user import User
from inkgenius.services import credits as credits_service

log = get_logger(__name__)


def verify_google_id_token(token: str) -> dict:
    """Verify Google ID token; return decoded claims (sub, email, name, picture, etc.)."""
    settings = get_settings()
    if not settings.google_client_id:
        raise ServiceUnavailableError("Google sign-in not configured")
    try:
        return id_token.verify_oauth2_token(
            token,
            google_requests.Request(),
            settings.google_client_id,
        )
    except (ValueError, GoogleAuthError) as e:
        raise UnauthorizedError(f"Invalid Google token: {e}") from e


async def upsert_user_from_google(claims: dict) -> User:
    """Create or refresh the user keyed by email; first login also opens the credits account."""
    email = (claims.get("email") or "").strip().lower()
    if not email:
        raise BadRequestError("No email found in Google profile")
    name = claims.get("name") or ""
    avatar = claims.get("picture")
    google_id = claims.get("sub")

    now = datetime.utcnow()
    user = await User.find_one(User.email == email)
    if user:
        user.name = name or user.name
        user.avatar = avatar or user.avatar
        user.google_id = google_id or user.google_id
        user.last_login_at = now
        user.updated_at = now
        await user.save()
        log.info("user_login", user_id=str(user.id), email=user.email)
    else:
        user = User(
            email=email,
            name=name,
            avatar=avatar,
            google_id=google_id,
            last_login_at=now,
        )
        await user.insert()
        log.info("user_created", user_id=str(user.id), email=user.email)

    await credits_service.ensure_user_credits(user)
    return user


def session_payload_for_user(user: User) -> dict:
    return {"user_id": str(user.id), "session_version": user.session_version}


def is_admin(user: User) -> bool:
    return user.role == "admin" or user.email.lower() in get_settings().admin_email_list


def serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "avatar": user.avatar,
        "google_id": user.google_id,
        "role": user.role,
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
        "created_at": user.created_at.isoformat(),
    }
