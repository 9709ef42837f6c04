import base64

import httpx

from inkgenius.core.config import get_settings
from inkgenius.generators.base import GeneratedImage, GenerationRequest, ImageGenerator

API_URL = "https://openrouter.ai/api/v1/images/generations"
REFERER = "https://inkgenius.digworldai.com"


class OpenRouterGenerator(ImageGenerator):
    name = "openrouter"
    model = "openai/dall-e-3"

    def __init__(self) -> None:
        self.api_key = get_settings().openrouter_api_key

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        response = await client.post(
            API_URL,
            json={
                "model": self.model,
                "prompt": (
                    f"Professional tattoo design: {request.prompt.strip()}. Style: black and white line art, "
                    "high contrast, clean lines, tattoo-ready, stencil-friendly, detailed artwork"
                ),
                "n": 1,
                "size": "1024x1024",
                "quality": "standard",
            },
            headers={"Authorization": f"Bearer {self.api_key}", "HTTP-Referer": REFERER},
        )
        if response.status_code != 200:
            raise self.fail(f"HTTP {response.status_code}")
        data = response.json().get("data") or []
        if not data:
            raise self.fail("no image in response")
        if data[0].get("b64_json"):
            return self.image(base64.b64decode(data[0]["b64_json"]))
        if data[0].get("url"):
            return await self.download(client, data[0]["url"])
        raise self.fail("no image in response")
