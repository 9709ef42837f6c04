from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field

from inkgenius.core.config import get_settings
from inkgenius.core.security import SESSION_MAX_AGE, create_session_cookie
from inkgenius.deps import SESSION_COOKIE_NAME, get_current_user
from inkgenius.models.user import User
from inkgenius.services import credits as credits_service
from inkgenius.services import users as user_service

router = APIRouter()


class GoogleAuthRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(alias="idToken")


@router.post("/google")
async def auth_google(body: GoogleAuthRequest, response: Response):
    """Exchange Google ID token for session; set httpOnly cookie."""
    claims = user_service.verify_google_id_token(body.id_token)
    user = await user_service.upsert_user_from_google(claims)
    session_value = create_session_cookie(user_service.session_payload_for_user(user))
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_value,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=get_settings().is_production,
        samesite="lax",
        path="/",
    )
    return {"user": user_service.serialize_user(user)}


@router.get("/me")
async def auth_me(user: User = Depends(get_current_user)):
    """Return current user with their balance. Requires session cookie."""
    account = await credits_service.ensure_user_credits(user)
    return {
        "user": user_service.serialize_user(user),
        "credits": account.credits,
        "is_admin": user_service.is_admin(user),
    }


@router.post("/logout")
async def auth_logout(response: Response, user: User = Depends(get_current_user)):
    """Clear the cookie and invalidate every outstanding session for this user."""
    user.session_version += 1
    await user.save()
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"status": "ok"}
