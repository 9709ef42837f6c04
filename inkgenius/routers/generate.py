from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, ConfigDict, Field, field_validator

from inkgenius.core.exceptions import BadRequestError
from inkgenius.core.images import clamp_dimensions, parse_data_url, validate_image
from inkgenius.deps import get_current_user, image_service
from inkgenius.generators.base import GenerationRequest
from inkgenius.models.user import User
from inkgenius.services import designs as designs_service
from inkgenius.services.image_generation import ImageGenerationService

router = APIRouter()

DEFAULT_STRENGTH = 0.7


class TextToImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    style: str | None = None
    width: int | None = None
    height: int | None = None
    negative_prompt: str | None = Field(default=None, alias="negativePrompt")

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt is required")
        return v.strip()


class ImageToImageRequest(TextToImageRequest):
    image_data: str = Field(alias="imageData")
    strength: float | None = Field(default=None, ge=0.0, le=1.0)


def _generation_request(
    prompt: str,
    style: str | None,
    width: int | None,
    height: int | None,
    negative_prompt: str | None = None,
    reference: tuple[bytes, str] | None = None,
    strength: float | None = None,
) -> GenerationRequest:
    w, h = clamp_dimensions(width, height)
    extra = {}
    if reference:
        extra = {
            "reference_image": reference[0],
            "reference_mime_type": reference[1],
            "strength": strength if strength is not None else DEFAULT_STRENGTH,
        }
    return GenerationRequest(prompt=prompt, style=style, width=w, height=h, negative_prompt=negative_prompt, **extra)


@router.post("/text-to-image")
async def text_to_image(
    body: TextToImageRequest,
    user: User = Depends(get_current_user),
    service: ImageGenerationService = Depends(image_service),
):
    request = _generation_request(body.prompt, body.style, body.width, body.height, body.negative_prompt)
    return await designs_service.create_text_design(user, request, service)


@router.post("/image-to-image")
async def image_to_image(
    prompt: str = Form(...),
    image: UploadFile = File(...),
    style: str | None = Form(None),
    strength: float | None = Form(None, ge=0.0, le=1.0),
    width: int | None = Form(None),
    height: int | None = Form(None),
    user: User = Depends(get_current_user),
    service: ImageGenerationService = Depends(image_service),
):
    """Multipart upload of the reference image."""
    if not prompt.strip():
        raise BadRequestError("Prompt is required")
    data = await image.read()
    mime_type = image.content_type or "application/octet-stream"
    validate_image(data, mime_type)
    request = _generation_request(prompt.strip(), style, width, height, reference=(data, mime_type), strength=strength)
    return await designs_service.create_image_design(user, request, service)


@router.post("/image-to-image-base64")
async def image_to_image_base64(
    body: ImageToImageRequest,
    user: User = Depends(get_current_user),
    service: ImageGenerationService = Depends(image_service),
):
    data, mime_type = parse_data_url(body.image_data)
    validate_image(data, mime_type)
    request = _generation_request(
        body.prompt,
        body.style,
        body.width,
        body.height,
        body.negative_prompt,
        reference=(data, mime_type),
        strength=body.strength,
    )
    return await designs_service.create_image_design(user, request, service)


@router.get("/history")
async def generation_history(
    user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    return await designs_service.get_generation_history(user, limit, offset)


@router.get("/test")
async def test_connection(service: ImageGenerationService = Depends(image_service)):
    """Reachability of the primary provider; generation itself never depends on it."""
    return await service.check_connection()
