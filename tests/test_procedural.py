import base64

from inkgenius.generators.base import GenerationRequest
from inkgenius.generators.procedural import ProceduralTattooGenerator, analyze_prompt, render_svg


def test_analysis_detects_style_and_elements():
    analysis = analyze_prompt("Geometric dragon with a rose and the moon")
    assert analysis.style == "geometric"
    assert analysis.elements == ["dragon", "flower", "moon"]
    assert analysis.complexity == "complex"


def test_analysis_understands_chinese_keywords():
    analysis = analyze_prompt("水彩 蝴蝶")
    assert analysis.style == "watercolor"
    assert analysis.elements == ["butterfly"]
    assert analysis.complexity == "simple"


def test_unknown_subject_is_abstract_traditional():
    analysis = analyze_prompt("something nobody can draw")
    assert analysis.style == "traditional"
    assert analysis.elements == ["abstract"]


def test_render_is_deterministic():
    assert render_svg("tribal skull") == render_svg("tribal skull")
    assert render_svg("tribal skull") != render_svg("realistic flower")


def test_render_escapes_prompt_and_sets_size():
    svg = render_svg("<script>alert(1)</script> & skull", width=800, height=600)
    assert "<script>" not in svg
    assert "&lt;script&gt;" in svg
    assert 'width="800" height="600"' in svg
    assert 'viewBox="0 0 512 512"' in svg


def test_decorations_only_beyond_simple():
    assert "M50,50 Q100,75 150,50" not in render_svg("skull")
    assert "M50,50 Q100,75 150,50" in render_svg("skull and heart")


async def test_generator_returns_svg_data_url():
    image = await ProceduralTattooGenerator().generate(None, GenerationRequest(prompt="cat"))
    assert image.provider == "procedural"
    assert image.mime_type == "image/svg+xml"
    prefix = "data:image/svg+xml;base64,"
    assert image.image_data.startswith(prefix)
    svg = base64.b64decode(image.image_data[len(prefix):]).decode()
    assert svg.startswith("<svg")
    assert "InkGenius Pro" in svg
