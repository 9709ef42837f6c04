"""Vertex AI Imagen over the REST predict endpoint."""

import asyncio
import base64
import random

import google.auth
import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from inkgenius.core.config import get_settings
from inkgenius.generators.base import NEGATIVE_PROMPT, GeneratedImage, GenerationRequest, ImageGenerator
from inkgenius.generators.prompts import aspect_ratio, enhance_prompt_for_tattoo, reference_prompt

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class ImagenGenerator(ImageGenerator):
    name = "imagen"
    supports_reference_image = True

    def __init__(self, credentials=None) -> None:
        settings = get_settings()
        self.project_id = settings.google_cloud_project_id
        self.location = settings.google_cloud_location
        self.model = settings.imagen_model
        self.credentials_file = settings.google_application_credentials
        self._credentials = credentials

    def is_configured(self) -> bool:
        return bool(self.project_id)

    @property
    def endpoint(self) -> str:
        return (
            f"https://{self.location}-aiplatform.googleapis.com/v1/projects/{self.project_id}"
            f"/locations/{self.location}/publishers/google/models/{self.model}:predict"
        )

    def _load_credentials(self):
        if self.credentials_file:
            return service_account.Credentials.from_service_account_file(self.credentials_file, scopes=SCOPES)
        credentials, _ = google.auth.default(scopes=SCOPES)
        return credentials

    async def access_token(self) -> str:
        try:
            if self._credentials is None:
                self._credentials = self._load_credentials()
            if not self._credentials.valid:
                await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
        except (GoogleAuthError, OSError) as e:
            raise self.fail(f"credentials unavailable: {e}") from e
        return self._credentials.token

    def build_payload(self, request: GenerationRequest) -> dict:
        ratio = aspect_ratio(request.width, request.height)
        negative = request.negative_prompt or NEGATIVE_PROMPT
        if request.reference_image:
            guidance = request.strength * 10 if request.strength else 7.5
            return {
                "instances": [{
                    "prompt": reference_prompt(request.prompt, request.style),
                    "image": {"bytesBase64Encoded": base64.b64encode(request.reference_image).decode("ascii")},
                    "editMode": "inpainting-insert",
                    "negativePrompt": negative,
                    "sampleCount": 1,
                    "guidanceScale": guidance,
                    "seed": random.randint(0, 999_999),
                }],
                "parameters": {"sampleCount": 1, "guidanceScale": guidance},
            }
        return {
            "instances": [{
                "prompt": enhance_prompt_for_tattoo(request.prompt, request.style),
                "negativePrompt": negative,
            }],
            "parameters": {
                "sampleCount": 1,
                "aspectRatio": ratio,
                "safetyFilterLevel": "block_some",
                "personGeneration": "dont_allow",
            },
        }

    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        token = await self.access_token()
        response = await client.post(
            self.endpoint,
            json=self.build_payload(request),
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.status_code != 200:
            raise self.fail(f"HTTP {response.status_code}: {response.text[:200]}")
        predictions = response.json().get("predictions") or []
        encoded = predictions[0].get("bytesBase64Encoded") if predictions else None
        if not encoded:
            raise self.fail("no image data in response")
        mime_type = predictions[0].get("mimeType") or "image/png"
        return self.image(base64.b64decode(encoded), mime_type)

    async def check_connection(self, client: httpx.AsyncClient) -> bool:
        """Reachability of the Gemini API with the configured key."""
        api_key = get_settings().gemini_api_key
        if not api_key:
            return False
        try:
            response = await client.get(f"{GEMINI_BASE_URL}/models", headers={"x-goog-api-key": api_key})
        except httpx.HTTPError:
            return False
        return response.status_code == 200
