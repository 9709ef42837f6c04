"""Fallback chain and provider clients over a mocked transport."""

import base64

import httpx
import pytest

from inkgenius.generators.base import GenerationRequest, GeneratorError, build_generators
from inkgenius.generators.craiyon import CraiyonGenerator
from inkgenius.generators.huggingface import HuggingFaceGenerator
from inkgenius.generators.imagen import ImagenGenerator
from inkgenius.generators.openrouter import OpenRouterGenerator
from inkgenius.generators.pollinations import PollinationsGenerator
from inkgenius.generators.replicate import ReplicateGenerator
from inkgenius.services.image_generation import ImageGenerationService

PNG = b"\x89PNG\r\n\x1a\nfake-png-body"


def png_response() -> httpx.Response:
    return httpx.Response(200, content=PNG, headers={"content-type": "image/png"})


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_first_success_wins():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        if request.url.host == "image.pollinations.ai":
            return png_response()
        return httpx.Response(500)

    service = ImageGenerationService(
        generators=[PollinationsGenerator(), CraiyonGenerator()],
        transport=httpx.MockTransport(handler),
    )
    result = await service.generate_from_text(GenerationRequest(prompt="a rose"))
    assert result["metadata"]["provider"] == "pollinations"
    assert result["image_data"].startswith("data:image/png;base64,")
    assert calls == ["image.pollinations.ai"]
    assert result["metadata"]["attempts"][0]["success"] is True


async def test_falls_through_in_order():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        if request.url.host == "api.craiyon.com":
            return httpx.Response(200, json={"images": [base64.b64encode(PNG).decode()]})
        return httpx.Response(503)

    service = ImageGenerationService(
        generators=[PollinationsGenerator(), CraiyonGenerator()],
        transport=httpx.MockTransport(handler),
    )
    result = await service.generate_from_text(GenerationRequest(prompt="a skull"))
    assert calls == ["image.pollinations.ai", "api.craiyon.com"]
    assert result["metadata"]["provider"] == "craiyon"
    attempts = result["metadata"]["attempts"]
    assert [a["provider"] for a in attempts] == ["pollinations", "craiyon"]
    assert attempts[0]["success"] is False
    assert "503" in attempts[0]["error"]


async def test_everything_fails_returns_procedural_svg():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    service = ImageGenerationService(
        generators=[PollinationsGenerator(), CraiyonGenerator()],
        transport=httpx.MockTransport(handler),
    )
    result = await service.generate_from_text(GenerationRequest(prompt="dragon", width=512, height=512))
    assert result["metadata"]["provider"] == "procedural"
    assert result["image_data"].startswith("data:image/svg+xml;base64,")
    assert result["metadata"]["dimensions"] == {"width": 512, "height": 512}
    assert len(result["metadata"]["attempts"]) == 3


async def test_unconfigured_providers_are_skipped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    service = ImageGenerationService(
        generators=[ImagenGenerator(), OpenRouterGenerator(), ReplicateGenerator()],
        transport=httpx.MockTransport(handler),
    )
    assert service.chain_for(GenerationRequest(prompt="x")) == []
    result = await service.generate_from_text(GenerationRequest(prompt="x"))
    assert result["metadata"]["provider"] == "procedural"


async def test_reference_requests_skip_text_only_providers():
    service = ImageGenerationService(generators=[PollinationsGenerator(), CraiyonGenerator()])
    request = GenerationRequest(prompt="x", reference_image=PNG, reference_mime_type="image/png")
    assert service.chain_for(request) == []
    assert len(service.chain_for(GenerationRequest(prompt="x"))) == 2


async def test_build_generators_drops_unknown_names():
    names = [g.name for g in build_generators(["pollinations", "bogus", "craiyon"])]
    assert names == ["pollinations", "craiyon"]


async def test_pollinations_rejects_non_image():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["model"] == "flux"
        assert request.url.params["width"] == "768"
        return httpx.Response(200, text="<html>busy</html>", headers={"content-type": "text/html"})

    async with mock_client(handler) as client:
        with pytest.raises(GeneratorError, match="non-image"):
            await PollinationsGenerator().generate(client, GenerationRequest(prompt="owl", width=768))


async def test_huggingface_retries_once_while_loading():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503, json={"error": "Model is currently loading", "estimated_time": 20})
        return png_response()

    async with mock_client(handler) as client:
        image = await HuggingFaceGenerator(retry_delay=0).generate(client, GenerationRequest(prompt="wolf"))
    assert len(calls) == 2
    assert image.provider == "huggingface"


async def test_huggingface_other_errors_fail_fast():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"error": "bad input"})

    async with mock_client(handler) as client:
        with pytest.raises(GeneratorError, match="bad input"):
            await HuggingFaceGenerator(retry_delay=0).generate(client, GenerationRequest(prompt="wolf"))
    assert len(calls) == 1


async def test_openrouter_downloads_hosted_url():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "openrouter.ai":
            assert request.headers["Authorization"] == "Bearer or-key"
            return httpx.Response(200, json={"data": [{"url": "https://cdn.example.com/out.png"}]})
        return png_response()

    generator = OpenRouterGenerator()
    generator.api_key = "or-key"
    async with mock_client(handler) as client:
        image = await generator.generate(client, GenerationRequest(prompt="koi"))
    assert image.model == "openai/dall-e-3"
    assert image.image_data.startswith("data:image/png;base64,")


async def test_replicate_polls_until_succeeded():
    polls = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"id": "pred1", "status": "starting"})
        if request.url.host == "api.replicate.com":
            polls.append(request)
            if len(polls) < 2:
                return httpx.Response(200, json={"id": "pred1", "status": "processing"})
            return httpx.Response(200, json={"id": "pred1", "status": "succeeded", "output": ["https://r.example/o.png"]})
        return png_response()

    generator = ReplicateGenerator(poll_interval=0)
    generator.api_token = "r8_token"
    async with mock_client(handler) as client:
        image = await generator.generate(client, GenerationRequest(prompt="tiger"))
    assert len(polls) == 2
    assert image.provider == "replicate"


async def test_replicate_gives_up_after_max_attempts():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "pred1", "status": "processing"})

    generator = ReplicateGenerator(poll_interval=0, max_attempts=3)
    generator.api_token = "r8_token"
    async with mock_client(handler) as client:
        with pytest.raises(GeneratorError, match="processing"):
            await generator.generate(client, GenerationRequest(prompt="tiger"))


async def test_imagen_reference_payload():
    generator = ImagenGenerator(credentials=object())
    request = GenerationRequest(prompt="lotus", style="minimalist", reference_image=PNG, strength=0.5)
    payload = generator.build_payload(request)
    instance = payload["instances"][0]
    assert instance["image"]["bytesBase64Encoded"] == base64.b64encode(PNG).decode()
    assert instance["guidanceScale"] == 5.0
    assert instance["prompt"].startswith("Based on the reference image")


async def test_imagen_text_payload_uses_aspect_ratio():
    payload = ImagenGenerator(credentials=object()).build_payload(
        GenerationRequest(prompt="wave", width=1024, height=576)
    )
    assert payload["parameters"]["aspectRatio"] == "16:9"
    assert "tattoo design" in payload["instances"][0]["prompt"]


class FakeCredentials:
    valid = True
    token = "tok"


def imagen_generator() -> ImagenGenerator:
    generator = ImagenGenerator(credentials=FakeCredentials())
    generator.project_id = "ink-project"
    return generator


async def test_imagen_decodes_prediction():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["host"] = request.url.host
        seen["auth"] = request.headers["authorization"]
        encoded = base64.b64encode(PNG).decode()
        return httpx.Response(200, json={"predictions": [{"bytesBase64Encoded": encoded, "mimeType": "image/png"}]})

    async with mock_client(handler) as client:
        image = await imagen_generator().generate(client, GenerationRequest(prompt="koi"))
    assert seen["host"].endswith("aiplatform.googleapis.com")
    assert seen["auth"] == "Bearer tok"
    assert image.provider == "imagen"
    assert image.image_data == "data:image/png;base64," + base64.b64encode(PNG).decode()


async def test_imagen_empty_predictions_fail():
    async with mock_client(lambda request: httpx.Response(200, json={"predictions": []})) as client:
        with pytest.raises(GeneratorError, match="no image data"):
            await imagen_generator().generate(client, GenerationRequest(prompt="koi"))


async def test_imagen_http_error_fails():
    async with mock_client(lambda request: httpx.Response(403, text="denied")) as client:
        with pytest.raises(GeneratorError, match="HTTP 403"):
            await imagen_generator().generate(client, GenerationRequest(prompt="koi"))


@pytest.fixture
def gemini_key(monkeypatch):
    from inkgenius.core.config import get_settings

    monkeypatch.setenv("GEMINI_API_KEY", "gm-key")
    get_settings.cache_clear()
    yield
    monkeypatch.delenv("GEMINI_API_KEY")
    get_settings.cache_clear()


@pytest.mark.parametrize("status,connected", [(200, True), (403, False)])
async def test_imagen_check_connection(gemini_key, status, connected):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "generativelanguage.googleapis.com"
        assert request.headers["x-goog-api-key"] == "gm-key"
        return httpx.Response(status, json={"models": []})

    async with mock_client(handler) as client:
        assert await imagen_generator().check_connection(client) is connected


async def test_imagen_check_connection_without_key(monkeypatch):
    from inkgenius.core.config import get_settings

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    get_settings.cache_clear()

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with mock_client(handler) as client:
        assert await imagen_generator().check_connection(client) is False


async def test_service_reports_imagen_connection(gemini_key):
    service = ImageGenerationService(
        generators=[imagen_generator()],
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"models": []})),
    )
    assert await service.check_connection() == {"provider": "imagen", "connected": True}
