import base64
import binascii

import httpx

from inkgenius.generators.base import GeneratedImage, GenerationRequest, ImageGenerator

API_URL = "https://api.craiyon.com/v3"
MODEL_VERSION = "35s5hfwn9n78gb06"


class CraiyonGenerator(ImageGenerator):
    name = "craiyon"
    model = "craiyon-v3-art"

    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        response = await client.post(
            API_URL,
            json={
                "prompt": f"tattoo design {request.prompt.strip()} black and white line art",
                "model": "art",
                "negative_prompt": "blurry low quality nsfw",
                "version": MODEL_VERSION,
            },
        )
        if response.status_code != 200:
            raise self.fail(f"HTTP {response.status_code}")
        body = response.json()
        encoded = (body.get("images") or [None])[0] or body.get("image")
        if not encoded:
            raise self.fail("no images in response")
        try:
            return self.image(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError) as e:
            raise self.fail("undecodable image payload") from e
