import random
from urllib.parse import quote

import httpx

from inkgenius.generators.base import USER_AGENT, GeneratedImage, GenerationRequest, ImageGenerator, image_mime_type

BASE_URL = "https://image.pollinations.ai/prompt"


class PollinationsGenerator(ImageGenerator):
    """Free, keyless text-to-image; the first remote fallback."""

    name = "pollinations"
    model = "flux"

    def build_prompt(self, request: GenerationRequest) -> str:
        return (
            f"professional tattoo design, {request.prompt.strip()}, black and white line art, high contrast, "
            "clean lines, tattoo stencil, detailed artwork, minimalist style"
        )

    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        params = {
            "width": str(request.width),
            "height": str(request.height),
            "seed": str(random.randint(0, 999_999)),
            "model": self.model,
            "enhance": "true",
        }
        response = await client.get(
            f"{BASE_URL}/{quote(self.build_prompt(request), safe='')}",
            params=params,
            headers={"User-Agent": USER_AGENT, "Accept": "image/*"},
        )
        if response.status_code != 200:
            raise self.fail(f"HTTP {response.status_code}")
        mime_type = image_mime_type(response)
        if not mime_type:
            raise self.fail("non-image response")
        return self.image(response.content, mime_type)
