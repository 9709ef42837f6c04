"""
Fallback chain over the image providers.

Providers are tried one at a time in configured order; the first image wins. When every remote
provider fails (or none is configured) the procedural SVG generator answers, so a caller always
gets an image back.
"""

import time
from typing import Any

import httpx

from inkgenius.core.config import get_settings
from inkgenius.core.exceptions import BadRequestError
from inkgenius.core.logging import get_logger, truncate
from inkgenius.generators.base import (
    GeneratedImage,
    GenerationRequest,
    GeneratorError,
    ImageGenerator,
    build_generators,
)
from inkgenius.generators.procedural import ProceduralTattooGenerator

log = get_logger(__name__)


class ImageGenerationService:
    def __init__(
        self,
        generators: list[ImageGenerator] | None = None,
        fallback: ImageGenerator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if generators is None:
            names = [n for n in get_settings().image_providers if n != "procedural"]
            generators = build_generators(names)
        self.generators = generators
        self.fallback = fallback or ProceduralTattooGenerator()
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=get_settings().image_request_timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    def chain_for(self, request: GenerationRequest) -> list[ImageGenerator]:
        needs_reference = request.reference_image is not None
        return [
            g for g in self.generators
            if g.is_configured() and (g.supports_reference_image or not needs_reference)
        ]

    async def generate_from_text(self, request: GenerationRequest) -> dict[str, Any]:
        return await self._run(request.model_copy(update={"reference_image": None, "reference_mime_type": None}))

    async def generate_from_image(self, request: GenerationRequest) -> dict[str, Any]:
        if not request.reference_image:
            raise BadRequestError("Image data is required")
        return await self._run(request)

    async def _run(self, request: GenerationRequest) -> dict[str, Any]:
        started = time.perf_counter()
        attempts: list[dict[str, Any]] = []
        image: GeneratedImage | None = None

        async with self._client() as client:
            for generator in self.chain_for(request):
                attempt_started = time.perf_counter()
                try:
                    image = await generator.generate(client, request)
                except Exception as e:
                    attempts.append({
                        "provider": generator.name,
                        "success": False,
                        "error": str(e),
                        "duration_ms": _elapsed_ms(attempt_started),
                    })
                    if isinstance(e, (GeneratorError, httpx.HTTPError)):
                        log.warning("image_provider_failed", provider=generator.name, error=str(e))
                    else:
                        log.exception("image_provider_crashed", provider=generator.name)
                    continue
                attempts.append({
                    "provider": generator.name,
                    "success": True,
                    "duration_ms": _elapsed_ms(attempt_started),
                })
                break

            if image is None:
                log.info("image_fallback_procedural", prompt=truncate(request.prompt))
                image = await self.fallback.generate(client, request)
                attempts.append({"provider": self.fallback.name, "success": True, "duration_ms": 0})

        elapsed = _elapsed_ms(started)
        log.info(
            "image_generated",
            provider=image.provider,
            attempts=len(attempts),
            generation_time_ms=elapsed,
            reference=request.reference_image is not None,
        )
        return {
            "image_data": image.image_data,
            "metadata": {
                "model": image.model,
                "provider": image.provider,
                "prompt": request.prompt,
                "style": request.style,
                "generation_time_ms": elapsed,
                "dimensions": {"width": request.width, "height": request.height},
                "attempts": attempts,
            },
        }

    async def check_connection(self) -> dict[str, Any]:
        """Connection status of the first configured provider that can report one."""
        async with self._client() as client:
            for generator in self.generators:
                check = getattr(generator, "check_connection", None)
                if check is None or not generator.is_configured():
                    continue
                connected = await check(client)
                return {"provider": generator.name, "connected": connected}
        return {"provider": self.fallback.name, "connected": False}


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


_service: ImageGenerationService | None = None


def get_image_service() -> ImageGenerationService:
    global _service
    if _service is None:
        _service = ImageGenerationService()
    return _service
