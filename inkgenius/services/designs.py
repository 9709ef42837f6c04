"""Paid generations: debit, run the fallback chain, refund if the chain blows up."""

import uuid
from typing import Any

from inkgenius.core.config import get_settings
from inkgenius.core.logging import get_logger, truncate
from inkgenius.core.pagination import page_info
from inkgenius.generators.base import GenerationRequest
from inkgenius.models.user import User
from inkgenius.models.user_credits import CreditOperationType
from inkgenius.services import credits as credits_service
from inkgenius.services.image_generation import ImageGenerationService

log = get_logger(__name__)

GENERATION_SOURCE = "image_generation"


def _description(kind: str, prompt: str) -> str:
    excerpt = prompt if len(prompt) <= 50 else prompt[:50] + "..."
    return f"{kind}: {excerpt}"


async def _charge_and_generate(
    user: User,
    request: GenerationRequest,
    service: ImageGenerationService,
    cost: int,
    kind: str,
) -> dict[str, Any]:
    user_id = str(user.id)
    generation_id = uuid.uuid4().hex
    description = _description(kind, request.prompt)
    await credits_service.spend_credits(
        user_id,
        user.email,
        cost,
        description,
        source=GENERATION_SOURCE,
        related_id=generation_id,
        metadata={"kind": kind, "style": request.style},
    )
    try:
        if request.reference_image is not None:
            result = await service.generate_from_image(request)
        else:
            result = await service.generate_from_text(request)
    except Exception:
        log.exception("generation_failed_refunding", user_id=user_id, generation_id=generation_id)
        await credits_service.refund_credits(
            user_id,
            user.email,
            cost,
            f"Refund: {description}",
            source=GENERATION_SOURCE,
            related_id=generation_id,
        )
        raise

    result["metadata"]["generation_id"] = generation_id
    result["metadata"]["credits_used"] = cost
    result["metadata"]["remaining_credits"] = await credits_service.get_balance(user_id)
    log.info(
        "design_created",
        user_id=user_id,
        kind=kind,
        provider=result["metadata"]["provider"],
        prompt=truncate(request.prompt),
    )
    return result


async def create_text_design(user: User, request: GenerationRequest, service: ImageGenerationService) -> dict[str, Any]:
    cost = get_settings().credits_per_text_to_image
    return await _charge_and_generate(user, request, service, cost, "Text to image")


async def create_image_design(user: User, request: GenerationRequest, service: ImageGenerationService) -> dict[str, Any]:
    cost = get_settings().credits_per_image_to_image
    return await _charge_and_generate(user, request, service, cost, "Image to image")


async def get_generation_history(user: User, limit: int = 20, offset: int = 0) -> dict[str, Any]:
    """Past generations, read back from the spend side of the credits ledger."""
    user_id = str(user.id)
    transactions = await credits_service.get_user_transactions(
        user_id, limit=limit, offset=offset, source=GENERATION_SOURCE, type=CreditOperationType.SPEND
    )
    total = await credits_service.count_user_transactions(
        user_id, source=GENERATION_SOURCE, type=CreditOperationType.SPEND
    )
    return {
        "history": [credits_service.serialize_transaction(t) for t in transactions],
        "pagination": page_info(total, limit, offset),
    }
