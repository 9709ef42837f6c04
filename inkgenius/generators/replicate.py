import asyncio

import httpx

from inkgenius.core.config import get_settings
from inkgenius.generators.base import GeneratedImage, GenerationRequest, ImageGenerator

API_URL = "https://api.replicate.com/v1/predictions"
MODEL_VERSION = "ac732df83cea7fff18b8472768c88ad041fa750ff7682a21affe81863cbe77e4"
TERMINAL_STATUSES = ("succeeded", "failed", "canceled")


class ReplicateGenerator(ImageGenerator):
    """Asynchronous predictions: create, then poll until a terminal status or the attempt budget runs out."""

    name = "replicate"
    model = "stable-diffusion"

    def __init__(self, poll_interval: float = 2.0, max_attempts: int = 30) -> None:
        self.api_token = get_settings().replicate_api_token
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    def is_configured(self) -> bool:
        return bool(self.api_token)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self.api_token}"}

    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        response = await client.post(
            API_URL,
            json={
                "version": MODEL_VERSION,
                "input": {
                    "prompt": f"professional tattoo design: {request.prompt.strip()}, black and white line art, high contrast, clean lines",
                    "negative_prompt": "blurry, low quality, colorful, nsfw",
                    "width": request.width,
                    "height": request.height,
                    "num_inference_steps": 20,
                    "guidance_scale": 7.5,
                },
            },
            headers=self._headers(),
        )
        if response.status_code not in (200, 201):
            raise self.fail(f"HTTP {response.status_code}")
        prediction = response.json()

        attempts = 0
        while prediction.get("status") not in TERMINAL_STATUSES and attempts < self.max_attempts:
            await asyncio.sleep(self.poll_interval)
            poll = await client.get(f"{API_URL}/{prediction['id']}", headers=self._headers())
            if poll.status_code != 200:
                raise self.fail(f"polling failed with HTTP {poll.status_code}")
            prediction = poll.json()
            attempts += 1

        output = prediction.get("output") or []
        if prediction.get("status") != "succeeded" or not output:
            raise self.fail(f"prediction ended in status {prediction.get('status')}")
        url = output[0] if isinstance(output, list) else output
        return await self.download(client, url)
