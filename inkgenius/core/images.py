"""Data URL helpers and validation for reference images."""

import base64
import binascii
import re

from inkgenius.core.config import get_settings
from inkgenius.core.exceptions import BadRequestError

DATA_URL_RE = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(value: str) -> tuple[bytes, str]:
    """Return (bytes, mime_type) from a base64 data URL."""
    match = DATA_URL_RE.match(value.strip()) if value else None
    if not match:
        raise BadRequestError("Invalid base64 image format")
    mime_type, encoded = match.group(1), match.group(2)
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadRequestError("Invalid base64 image format") from e
    return data, mime_type


def validate_image_format(mime_type: str) -> bool:
    return mime_type in get_settings().image_supported_formats


def validate_image_size(data: bytes) -> bool:
    return len(data) <= get_settings().image_max_file_size


def validate_image(data: bytes, mime_type: str) -> None:
    if not validate_image_format(mime_type):
        raise BadRequestError(f"Unsupported image format: {mime_type}")
    if not data:
        raise BadRequestError("Image file is empty")
    if not validate_image_size(data):
        raise BadRequestError("Image file is too large")


def clamp_dimensions(width: int | None, height: int | None) -> tuple[int, int]:
    """Apply defaults and the configured maximum to requested dimensions."""
    s = get_settings()
    w = width or s.image_default_width
    h = height or s.image_default_height
    return max(64, min(w, s.image_max_width)), max(64, min(h, s.image_max_height))
