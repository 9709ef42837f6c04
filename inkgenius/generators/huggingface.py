import asyncio

import httpx

from inkgenius.core.config import get_settings
from inkgenius.generators.base import GeneratedImage, GenerationRequest, ImageGenerator, image_mime_type

MODEL_URL = "https://api-inference.huggingface.co/models/runwayml/stable-diffusion-v1-5"
NEGATIVE = "blurry, low quality, distorted, nsfw, watermark, text, signature, colorful, rainbow"


class HuggingFaceGenerator(ImageGenerator):
    """Inference API; a cold model answers with a "loading" error, which gets one delayed retry."""

    name = "huggingface"
    model = "runwayml/stable-diffusion-v1-5"

    def __init__(self, retry_delay: float = 10.0) -> None:
        self.token = get_settings().huggingface_api_token
        self.retry_delay = retry_delay

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(MODEL_URL, json=payload, headers=self._headers())

    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        prompt = f"tattoo design, {request.prompt.strip()}, black and white line art"
        response = await self._request(client, {
            "inputs": f"{prompt}, high quality, detailed, professional tattoo artwork, stencil ready",
            "parameters": {
                "negative_prompt": NEGATIVE,
                "num_inference_steps": 20,
                "guidance_scale": 7.5,
                "width": request.width,
                "height": request.height,
            },
        })
        if response.status_code == 200 and image_mime_type(response):
            return self.image(response.content, image_mime_type(response))

        error = _error_message(response)
        if "loading" in error.lower():
            await asyncio.sleep(self.retry_delay)
            retry = await self._request(client, {"inputs": prompt})
            if retry.status_code == 200 and image_mime_type(retry):
                return self.image(retry.content, image_mime_type(retry))
            error = _error_message(retry)
        raise self.fail(error or f"HTTP {response.status_code}")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
