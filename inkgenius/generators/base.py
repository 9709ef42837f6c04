from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel

from inkgenius.core.images import to_data_url

NEGATIVE_PROMPT = "blurry, low quality, distorted, watermark, text, signature, nsfw"
USER_AGENT = "InkGenius-Pro/1.0"


class GenerationRequest(BaseModel):
    prompt: str
    style: str | None = None
    width: int = 512
    height: int = 512
    negative_prompt: str | None = None
    reference_image: bytes | None = None
    reference_mime_type: str | None = None
    strength: float | None = None  # 0.0 - 1.0, reference image influence


class GeneratedImage(BaseModel):
    image_data: str  # data URL
    mime_type: str
    provider: str
    model: str


class GeneratorError(Exception):
    """A provider could not produce an image for this request."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class ImageGenerator(ABC):
    name: str = "generator"
    model: str = ""
    supports_reference_image: bool = False

    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        """Produce one image or raise GeneratorError."""
        ...

    def fail(self, message: str) -> GeneratorError:
        return GeneratorError(self.name, message)

    def image(self, data: bytes, mime_type: str = "image/png") -> GeneratedImage:
        if not data:
            raise self.fail("empty image payload")
        return GeneratedImage(
            image_data=to_data_url(data, mime_type),
            mime_type=mime_type,
            provider=self.name,
            model=self.model,
        )

    async def download(self, client: httpx.AsyncClient, url: str) -> GeneratedImage:
        """Fetch a provider-hosted result URL."""
        response = await client.get(url, headers={"User-Agent": USER_AGENT})
        if response.status_code != 200:
            raise self.fail(f"image download failed with HTTP {response.status_code}")
        return self.image(response.content, image_mime_type(response) or "image/png")


def image_mime_type(response: httpx.Response) -> str | None:
    """Image MIME type from Content-Type, or None when the body is not an image."""
    content_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    return content_type if content_type.startswith("image/") else None


def get_generator(name: str) -> ImageGenerator | None:
    """Provider by config name; None for unknown names."""
    name = name.strip().lower()
    if name == "imagen":
        from inkgenius.generators.imagen import ImagenGenerator
        return ImagenGenerator()
    if name == "pollinations":
        from inkgenius.generators.pollinations import PollinationsGenerator
        return PollinationsGenerator()
    if name == "openrouter":
        from inkgenius.generators.openrouter import OpenRouterGenerator
        return OpenRouterGenerator()
    if name == "huggingface":
        from inkgenius.generators.huggingface import HuggingFaceGenerator
        return HuggingFaceGenerator()
    if name == "craiyon":
        from inkgenius.generators.craiyon import CraiyonGenerator
        return CraiyonGenerator()
    if name == "replicate":
        from inkgenius.generators.replicate import ReplicateGenerator
        return ReplicateGenerator()
    if name == "procedural":
        from inkgenius.generators.procedural import ProceduralTattooGenerator
        return ProceduralTattooGenerator()
    return None


def build_generators(names: list[str]) -> list[ImageGenerator]:
    generators = [get_generator(n) for n in names]
    return [g for g in generators if g is not None]
