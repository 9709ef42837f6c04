"""
Offline SVG tattoo sketches.

Last link of the fallback chain: it needs no network, and the same prompt always
renders the same SVG.
"""

from dataclasses import dataclass, field
from xml.sax.saxutils import escape

import httpx

from inkgenius.generators.base import GeneratedImage, GenerationRequest, ImageGenerator

SVG_MIME_TYPE = "image/svg+xml"
CANVAS = 512
TITLE = "AI Tattoo Design - InkGenius Pro"

# First match wins; English and Chinese keywords.
STYLE_KEYWORDS = (
    ("geometric", ("geometric", "几何")),
    ("minimalist", ("minimalist", "极简", "简约")),
    ("realistic", ("realistic", "写实", "逼真")),
    ("tribal", ("tribal", "部落", "图腾")),
    ("watercolor", ("watercolor", "水彩")),
)

ELEMENT_KEYWORDS = (
    ("dragon", ("dragon", "龙")),
    ("flower", ("flower", "rose", "花", "玫瑰")),
    ("skull", ("skull", "骷髅", "头骨")),
    ("heart", ("heart", "心")),
    ("star", ("star", "星")),
    ("moon", ("moon", "月")),
    ("sun", ("sun", "太阳", "日")),
    ("animal", ("cat", "animal", "猫", "动物")),
    ("butterfly", ("butterfly", "蝴蝶")),
    ("tree", ("tree", "树")),
    ("bird", ("bird", "鸟")),
)


@dataclass
class PromptAnalysis:
    style: str = "traditional"
    elements: list[str] = field(default_factory=list)

    @property
    def complexity(self) -> str:
        if len(self.elements) > 2:
            return "complex"
        return "medium" if len(self.elements) > 1 else "simple"


def analyze_prompt(prompt: str) -> PromptAnalysis:
    text = prompt.lower()
    analysis = PromptAnalysis()
    for style, keywords in STYLE_KEYWORDS:
        if any(k in text for k in keywords):
            analysis.style = style
            break
    analysis.elements = [name for name, keywords in ELEMENT_KEYWORDS if any(k in text for k in keywords)]
    if not analysis.elements:
        analysis.elements.append("abstract")
    return analysis


DEFS = """<defs>
<linearGradient id="tattooGrad" x1="0%" y1="0%" x2="100%" y2="100%">
<stop offset="0%" style="stop-color:#000000;stop-opacity:1"/>
<stop offset="100%" style="stop-color:#333333;stop-opacity:1"/>
</linearGradient>
<filter id="roughPaper">
<feTurbulence baseFrequency="0.04" numOctaves="5" result="noise"/>
<feDisplacementMap in="SourceGraphic" in2="noise" scale="1"/>
</filter>
<pattern id="crosshatch" patternUnits="userSpaceOnUse" width="4" height="4">
<path d="M0,0 L4,4 M0,4 L4,0" stroke="black" stroke-width="0.5" opacity="0.3"/>
</pattern>
</defs>"""


def _group(translate: str, stroke_width: int, body: str) -> str:
    return (
        f'<g transform="translate({translate})" fill="none" stroke="black" '
        f'stroke-width="{stroke_width}" filter="url(#roughPaper)">{body}</g>'
    )


def dragon(style: str) -> str:
    extra = ""
    if style == "traditional":
        extra = '<path d="M-80,-20 L-100,-10 L-80,0" stroke-width="4"/>'
    elif style == "geometric":
        extra = '<polygon points="-10,-40 0,-50 10,-40 0,-30" fill="black"/>'
    return _group("256,256", 3, (
        '<path d="M-100,-50 Q-50,-100 0,-50 Q50,-100 100,-50 Q80,0 50,50 Q0,80 -50,50 Q-80,0 -100,-50 Z"/>'
        '<circle cx="0" cy="-30" r="15" fill="black"/>'
        '<path d="M-20,-30 Q0,-50 20,-30" stroke-width="2"/>'
        '<path d="M-60,20 Q-40,40 -20,20" stroke-width="2"/>'
        '<path d="M20,20 Q40,40 60,20" stroke-width="2"/>'
        '<path d="M-30,-10 L-35,-5 L-30,0" stroke-width="2"/>'
        '<path d="M30,-10 L35,-5 L30,0" stroke-width="2"/>'
        + extra
    ))


def flower(style: str) -> str:
    center = '<circle cx="0" cy="0" r="5" fill="black"/>' if style == "realistic" else ""
    return _group("256,256", 2, (
        '<circle cx="0" cy="0" r="20" fill="black" opacity="0.1"/>'
        '<path d="M0,-40 Q-20,-20 0,0 Q20,-20 0,-40" fill="black" opacity="0.3"/>'
        '<path d="M40,0 Q20,-20 0,0 Q20,20 40,0" fill="black" opacity="0.3"/>'
        '<path d="M0,40 Q20,20 0,0 Q-20,20 0,40" fill="black" opacity="0.3"/>'
        '<path d="M-40,0 Q-20,20 0,0 Q-20,-20 -40,0" fill="black" opacity="0.3"/>'
        '<path d="M-28,-28 Q-14,-14 0,0 Q-14,14 -28,28" fill="black" opacity="0.2"/>'
        '<path d="M28,-28 Q14,-14 0,0 Q14,14 28,28" fill="black" opacity="0.2"/>'
        '<line x1="0" y1="0" x2="0" y2="80" stroke-width="4"/>'
        '<path d="M-10,60 Q0,50 10,60" stroke-width="2"/>'
        '<path d="M-15,70 Q0,60 15,70" stroke-width="2"/>'
        + center
    ))


def skull(style: str) -> str:
    teeth = "".join(
        f'<line x1="{x}" y1="55" x2="{x}" y2="{70 if x in (-10, 10) else 65}" stroke-width="2"/>'
        for x in (-20, -10, 0, 10, 20)
    )
    tribal = '<path d="M-70,-30 Q-80,-10 -70,10 Q-60,0 -70,-30" fill="black"/>' if style == "tribal" else ""
    return _group("256,200", 3, (
        '<ellipse cx="0" cy="0" rx="60" ry="80" fill="white" stroke="black"/>'
        '<circle cx="-25" cy="-20" r="15" fill="black"/>'
        '<circle cx="25" cy="-20" r="15" fill="black"/>'
        '<path d="M0,10 L-10,30 L0,40 L10,30 Z" fill="black"/>'
        '<path d="M-30,50 Q0,60 30,50" stroke-width="2"/>'
        + teeth + tribal
    ))


def animal(style: str) -> str:
    return _group("256,256", 3, (
        '<circle cx="0" cy="0" r="50" fill="white" stroke="black"/>'
        '<path d="M-30,-40 L-20,-60 L-10,-40" fill="black"/>'
        '<path d="M10,-40 L20,-60 L30,-40" fill="black"/>'
        '<circle cx="-20" cy="-10" r="8" fill="black"/>'
        '<circle cx="20" cy="-10" r="8" fill="black"/>'
        '<path d="M0,10 L-5,20 L0,25 L5,20 Z" fill="black"/>'
        '<path d="M-15,25 Q0,35 15,25" stroke-width="2"/>'
        '<path d="M-40,0 Q-60,10 -40,20" stroke-width="2"/>'
        '<path d="M40,0 Q60,10 40,20" stroke-width="2"/>'
        '<circle cx="-15" cy="-5" r="2" fill="white"/>'
        '<circle cx="15" cy="-5" r="2" fill="white"/>'
    ))


def butterfly(style: str) -> str:
    return _group("256,256", 2, (
        '<line x1="0" y1="-40" x2="0" y2="40" stroke-width="3"/>'
        '<path d="M0,-30 Q-30,-50 -50,-30 Q-40,-10 -20,-20 Q-10,-25 0,-30" fill="black" opacity="0.3"/>'
        '<path d="M0,-30 Q30,-50 50,-30 Q40,-10 20,-20 Q10,-25 0,-30" fill="black" opacity="0.3"/>'
        '<path d="M0,10 Q-25,20 -40,40 Q-30,50 -15,35 Q-5,25 0,10" fill="black" opacity="0.2"/>'
        '<path d="M0,10 Q25,20 40,40 Q30,50 15,35 Q5,25 0,10" fill="black" opacity="0.2"/>'
        '<circle cx="-35" cy="-35" r="3" fill="black"/>'
        '<circle cx="35" cy="-35" r="3" fill="black"/>'
        '<path d="M-2,-40 L2,-40 L1,-45 L-1,-45 Z" fill="black"/>'
        '<path d="M-1,-45 Q-3,-48 -1,-50" stroke-width="1"/>'
        '<path d="M1,-45 Q3,-48 1,-50" stroke-width="1"/>'
    ))


def tree(style: str) -> str:
    return _group("256,400", 3, (
        '<rect x="-10" y="0" width="20" height="80" fill="url(#crosshatch)" stroke="black"/>'
        '<path d="M0,-20 Q-40,-60 -60,-40 Q-50,-20 -30,-30 Q-15,-35 0,-20" fill="black" opacity="0.4"/>'
        '<path d="M0,-20 Q40,-60 60,-40 Q50,-20 30,-30 Q15,-35 0,-20" fill="black" opacity="0.4"/>'
        '<path d="M0,-40 Q-30,-80 -50,-60 Q-40,-40 -20,-50 Q-10,-55 0,-40" fill="black" opacity="0.3"/>'
        '<path d="M0,-40 Q30,-80 50,-60 Q40,-40 20,-50 Q10,-55 0,-40" fill="black" opacity="0.3"/>'
        '<circle cx="-25" cy="-25" r="2" fill="black"/>'
        '<circle cx="25" cy="-25" r="2" fill="black"/>'
        '<circle cx="0" cy="-50" r="2" fill="black"/>'
        '<path d="M-5,80 Q-15,90 -10,100 Q0,95 5,100 Q15,90 5,80" stroke-width="2"/>'
    ))


def geometric(style: str) -> str:
    return _group("256,256", 2, (
        '<polygon points="-60,-60 60,-60 60,60 -60,60" stroke-width="3"/>'
        '<polygon points="-40,-40 40,-40 40,40 -40,40"/>'
        '<polygon points="-20,-20 20,-20 20,20 -20,20"/>'
        '<circle cx="0" cy="0" r="30"/>'
        '<circle cx="0" cy="0" r="15"/>'
        '<line x1="-60" y1="-60" x2="60" y2="60" stroke-width="1"/>'
        '<line x1="60" y1="-60" x2="-60" y2="60" stroke-width="1"/>'
        '<line x1="0" y1="-60" x2="0" y2="60" stroke-width="1"/>'
        '<line x1="-60" y1="0" x2="60" y2="0" stroke-width="1"/>'
        '<polygon points="0,-45 -15,-30 0,-15 15,-30" fill="black" opacity="0.3"/>'
        '<polygon points="0,45 -15,30 0,15 15,30" fill="black" opacity="0.3"/>'
    ))


def abstract(style: str) -> str:
    return _group("256,256", 2, (
        '<path d="M-80,0 Q-40,-40 0,0 Q40,-40 80,0 Q40,40 0,0 Q-40,40 -80,0" stroke-width="3"/>'
        '<circle cx="0" cy="0" r="20" stroke-width="2"/>'
        '<path d="M-50,-25 Q0,-50 50,-25" stroke-width="2"/>'
        '<path d="M-50,25 Q0,50 50,25" stroke-width="2"/>'
        '<circle cx="-30" cy="0" r="5" fill="black"/>'
        '<circle cx="30" cy="0" r="5" fill="black"/>'
        '<circle cx="0" cy="-30" r="3" fill="black"/>'
        '<circle cx="0" cy="30" r="3" fill="black"/>'
        '<path d="M-60,-60 Q-30,-80 0,-60 Q30,-80 60,-60" stroke-width="1" opacity="0.5"/>'
        '<path d="M-60,60 Q-30,80 0,60 Q30,80 60,60" stroke-width="1" opacity="0.5"/>'
    ))


DECORATIONS = (
    '<g fill="none" stroke="black" stroke-width="1" opacity="0.5">'
    '<path d="M50,50 Q100,75 150,50"/>'
    '<path d="M362,50 Q412,75 462,50"/>'
    '<path d="M50,462 Q100,437 150,462"/>'
    '<path d="M362,462 Q412,437 462,462"/>'
    '<circle cx="100" cy="100" r="3" fill="black"/>'
    '<circle cx="412" cy="100" r="3" fill="black"/>'
    '<circle cx="100" cy="412" r="3" fill="black"/>'
    '<circle cx="412" cy="412" r="3" fill="black"/>'
    '<path d="M80,80 L120,120 M120,80 L80,120" stroke-width="0.5"/>'
    '<path d="M392,80 L432,120 M432,80 L392,120" stroke-width="0.5"/>'
    "</g>"
)

# Priority order when a prompt names several subjects.
MOTIFS = (
    ("dragon", dragon),
    ("flower", flower),
    ("skull", skull),
    ("animal", animal),
    ("butterfly", butterfly),
    ("tree", tree),
)


def motif_for(analysis: PromptAnalysis) -> str:
    for element, draw in MOTIFS:
        if element in analysis.elements:
            return draw(analysis.style)
    if analysis.style == "geometric":
        return geometric(analysis.style)
    return abstract(analysis.style)


def render_svg(prompt: str, width: int = CANVAS, height: int = CANVAS) -> str:
    analysis = analyze_prompt(prompt)
    caption = escape(prompt.strip()[:60])
    parts = [
        f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {CANVAS} {CANVAS}">',
        DEFS,
        '<rect width="100%" height="100%" fill="white"/>',
        motif_for(analysis),
    ]
    if analysis.complexity != "simple":
        parts.append(DECORATIONS)
    parts.append(f'<text x="256" y="480" text-anchor="middle" font-family="serif" font-size="14" fill="#666">{TITLE}</text>')
    if caption:
        parts.append(f'<text x="256" y="498" text-anchor="middle" font-family="serif" font-size="10" fill="#999">{caption}</text>')
    parts.append("</svg>")
    return "".join(parts)


class ProceduralTattooGenerator(ImageGenerator):
    name = "procedural"
    model = "procedural-svg"

    def render(self, request: GenerationRequest) -> GeneratedImage:
        svg = render_svg(request.prompt, request.width, request.height)
        return self.image(svg.encode("utf-8"), SVG_MIME_TYPE)

    async def generate(self, client: httpx.AsyncClient, request: GenerationRequest) -> GeneratedImage:
        return self.render(request)
