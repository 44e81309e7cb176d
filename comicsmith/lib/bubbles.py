# comicsmith/lib/bubbles.py
from __future__ import annotations

import math
from functools import lru_cache
from typing import Iterable, List, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from comicsmith.logger import get_logger
from comicsmith.schemas import TextPlacement

log = get_logger(__name__)

# Speech bubble
SPEECH_FONT_SIZE = 36
SPEECH_WRAP = 280
SPEECH_PAD_X, SPEECH_PAD_Y = 24, 18
SPEECH_RADIUS = 15
SPEECH_STROKE = 4.5
SPEECH_LINE_HEIGHT = 1.3
TAIL_BASE_WIDTH = 20

# Narration box
NARRATION_FONT_SIZE = 32
NARRATION_WRAP = 600
NARRATION_PAD_X, NARRATION_PAD_Y = 20, 15
NARRATION_RADIUS = 8
NARRATION_STROKE = 3
NARRATION_LINE_HEIGHT = 1.35
PARCHMENT = (244, 228, 188, 255)

# Title
TITLE_FONT_SIZE = 64
TITLE_STROKE = 6

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)

_FONT_CANDIDATES = {
    "sans": ("DejaVuSans.ttf", "LiberationSans-Regular.ttf", "Arial.ttf"),
    "sans-bold": ("DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "Arial Bold.ttf"),
    "serif-italic": ("DejaVuSerif-Italic.ttf", "LiberationSerif-Italic.ttf", "Times New Roman Italic.ttf"),
}


@lru_cache(maxsize=None)
def load_font(style: str, size: int) -> ImageFont.ImageFont:
    for name in _FONT_CANDIDATES[style]:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    log.debug(f"no truetype font for {style}; using Pillow default")
    return ImageFont.load_default(size=size)


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> List[str]:
    """Greedy word wrap; a single word wider than max_width gets its own line."""
    lines: List[str] = []
    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}".strip()
            if current and draw.textlength(candidate, font=font) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return [ln for ln in lines if ln] or [""]


def _block_size(draw, lines: Sequence[str], font, line_height: float) -> Tuple[float, float]:
    width = max((draw.textlength(ln, font=font) for ln in lines), default=0)
    return width, line_height * len(lines)


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def _fit(x: float, y: float, w: float, h: float, canvas: Tuple[int, int]) -> Tuple[float, float]:
    cw, ch = canvas
    return _clamp(x, 0, max(0, cw - w)), _clamp(y, 0, max(0, ch - h))


def draw_title(draw: ImageDraw.ImageDraw, placement: TextPlacement) -> None:
    font = load_font("sans-bold", TITLE_FONT_SIZE)
    draw.text(
        (placement.position.x, placement.position.y),
        placement.text,
        font=font,
        fill=BLACK,
        stroke_width=TITLE_STROKE,
        stroke_fill=WHITE,
        anchor="ma",  # x is the horizontal centre, y the top
    )


def draw_narration(draw: ImageDraw.ImageDraw, placement: TextPlacement, canvas: Tuple[int, int]) -> None:
    font = load_font("serif-italic", NARRATION_FONT_SIZE)
    line_h = NARRATION_FONT_SIZE * NARRATION_LINE_HEIGHT
    lines = wrap_text(draw, placement.text, font, NARRATION_WRAP)
    tw, th = _block_size(draw, lines, font, line_h)
    w, h = tw + 2 * NARRATION_PAD_X, th + 2 * NARRATION_PAD_Y
    x, y = _fit(placement.position.x, placement.position.y, w, h, canvas)
    draw.rounded_rectangle(
        (x, y, x + w, y + h), radius=NARRATION_RADIUS, fill=PARCHMENT, outline=BLACK, width=NARRATION_STROKE
    )
    for i, line in enumerate(lines):
        draw.text((x + NARRATION_PAD_X, y + NARRATION_PAD_Y + i * line_h), line, font=font, fill=BLACK)


def tail_points(
    bubble: Tuple[float, float, float, float], tip: Tuple[float, float], base_width: float = TAIL_BASE_WIDTH
) -> List[Tuple[float, float]]:
    """
    Triangle from the bubble side facing the tip to the tip itself.
    The side is chosen by the dominant axis of (tip - centre); the base slides along that side
    towards the tip, at most 40px from centre on top/bottom and 30px on left/right.
    """
    x, y, w, h = bubble
    cx, cy = x + w / 2, y + h / 2
    tx, ty = tip
    dx, dy = tx - cx, ty - cy
    half = base_width / 2
    if abs(dx) > abs(dy):
        edge_x = x + w if dx > 0 else x
        by = cy + _clamp(dy, -30, 30)
        by = _clamp(by, y + half, y + h - half)
        return [(edge_x, by - half), (edge_x, by + half), (tx, ty)]
    edge_y = y + h if dy > 0 else y
    bx = cx + _clamp(dx, -40, 40)
    bx = _clamp(bx, x + half, x + w - half)
    return [(bx - half, edge_y), (bx + half, edge_y), (tx, ty)]


def draw_speech(draw: ImageDraw.ImageDraw, placement: TextPlacement, canvas: Tuple[int, int]) -> None:
    font = load_font("sans", SPEECH_FONT_SIZE)
    stroke = math.ceil(SPEECH_STROKE)
    line_h = SPEECH_FONT_SIZE * SPEECH_LINE_HEIGHT
    lines = wrap_text(draw, placement.text, font, SPEECH_WRAP)
    tw, th = _block_size(draw, lines, font, line_h)
    w, h = tw + 2 * SPEECH_PAD_X, th + 2 * SPEECH_PAD_Y
    x, y = _fit(placement.position.x, placement.position.y, w, h, canvas)

    tri = None
    if placement.tail is not None:
        tri = tail_points((x, y, w, h), (placement.tail.x, placement.tail.y))
        draw.polygon(tri, fill=WHITE, outline=BLACK, width=stroke)

    draw.rounded_rectangle((x, y, x + w, y + h), radius=SPEECH_RADIUS, fill=WHITE, outline=BLACK, width=stroke)

    if tri is not None:
        # open the bubble outline where the tail joins
        (x1, y1), (x2, y2), _ = tri
        draw.line([(x1, y1), (x2, y2)], fill=WHITE, width=stroke + 1)

    for i, line in enumerate(lines):
        lw = draw.textlength(line, font=font)
        draw.text((x + (w - lw) / 2, y + SPEECH_PAD_Y + i * line_h), line, font=font, fill=BLACK)


def render_placements(img: Image.Image, placements: Iterable[TextPlacement]) -> Image.Image:
    """Draw placements in reading order onto a copy of img."""
    out = img.convert("RGBA")
    draw = ImageDraw.Draw(out)
    for p in sorted(placements, key=lambda p: p.reading_order):
        if p.type == "title":
            draw_title(draw, p)
        elif p.type == "narration":
            draw_narration(draw, p, out.size)
        else:
            draw_speech(draw, p, out.size)
    return out
