from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from inkgenius.services import subscribers as subscribers_service

router = APIRouter()


class SubscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    source: str | None = None
    page_url: str | None = Field(default=None, alias="pageUrl")
    referrer: str | None = None


@router.post("")
async def subscribe(body: SubscribeRequest):
    subscriber, created = await subscribers_service.subscribe(body.email, body.source, body.page_url, body.referrer)
    return {
        "email": subscriber.email,
        "created": created,
        "message": "Subscribed successfully" if created else "Already subscribed",
    }
