"""Prompt shaping shared by the remote generators."""

TATTOO_KEYWORDS = (
    "tattoo design",
    "black and white line art",
    "high contrast",
    "clean lines",
    "tattoo-ready",
    "stencil-friendly",
    "professional tattoo artwork",
)

STYLE_ENHANCEMENTS = {
    "traditional": "traditional tattoo style, bold outlines, limited color palette, classic American tattoo",
    "realistic": "photorealistic tattoo design, detailed shading, lifelike, hyperrealistic",
    "minimalist": "minimalist tattoo design, simple lines, clean aesthetic, geometric simplicity",
    "geometric": "geometric tattoo design, precise lines, mathematical patterns, sacred geometry",
    "watercolor": "watercolor tattoo style, flowing colors, artistic brushstrokes, paint splash effects",
    "blackwork": "blackwork tattoo design, solid black areas, high contrast, bold silhouettes",
}

QUALITY_SUFFIX = "high quality, detailed, professional, artistic masterpiece"


def enhance_prompt_for_tattoo(prompt: str, style: str | None = None) -> str:
    enhanced = prompt.strip()
    if "tattoo" not in enhanced.lower():
        enhanced = f"{enhanced}, {', '.join(TATTOO_KEYWORDS)}"
    if style and style.lower() in STYLE_ENHANCEMENTS:
        enhanced = f"{enhanced}, {STYLE_ENHANCEMENTS[style.lower()]}"
    return f"{enhanced}, {QUALITY_SUFFIX}"


def reference_prompt(prompt: str, style: str | None = None) -> str:
    return f"Based on the reference image, create a tattoo design: {prompt.strip()}. Style: {style or 'artistic tattoo design'}"


def aspect_ratio(width: int | None, height: int | None) -> str:
    """Nearest aspect ratio Imagen accepts."""
    w = width or 512
    h = height or 512
    if w == h:
        return "1:1"
    if w > h:
        return "16:9" if w / h >= 1.7 else "4:3"
    return "9:16" if h / w >= 1.7 else "3:4"
