"""Shared FastAPI dependencies."""

from bson import ObjectId
from fastapi import Depends, Request

from inkgenius.core.config import get_settings
from inkgenius.core.exceptions import ForbiddenError, TooManyRequestsError, UnauthorizedError
from inkgenius.core.security import load_session_cookie
from inkgenius.models.user import User
from inkgenius.services import rate_limit as rate_limit_service
from inkgenius.services.image_generation import ImageGenerationService, get_image_service
from inkgenius.services.users import is_admin

SESSION_COOKIE_NAME = "inkgenius_session"


async def get_current_user(request: Request) -> User:
    """Dependency: load session from cookie and return User."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        raise UnauthorizedError("Not authenticated")
    payload = load_session_cookie(cookie)
    if not payload:
        raise UnauthorizedError("Invalid or expired session")
    user_id = payload.get("user_id")
    if not user_id:
        raise UnauthorizedError("Invalid session")
    user = await User.get(user_id) if ObjectId.is_valid(user_id) else None
    if not user:
        raise UnauthorizedError("User not found")
    if payload.get("session_version") != user.session_version:
        raise UnauthorizedError("Session invalidated")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency: role admin, or an address listed in ADMIN_EMAILS."""
    if not is_admin(user):
        raise ForbiddenError("Admin only")
    return user


async def rate_limit(request: Request) -> None:
    """Dependency: fixed-window limit per client IP."""
    settings = get_settings()
    client_id = request.client.host if request.client else "unknown"
    allowed, retry_after = await rate_limit_service.hit(
        rate_limit_service.get_redis(),
        client_id,
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
    )
    if not allowed:
        raise TooManyRequestsError(
            "Too many requests from this IP, please try again later.",
            retry_after=retry_after,
        )


def image_service() -> ImageGenerationService:
    return get_image_service()
