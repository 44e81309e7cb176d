# comicsmith/lib/geometry.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Tuple

from comicsmith.schemas import LayoutSlot

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*[x×:]\s*(\d+(?:\.\d+)?)\s*$", re.IGNORECASE)


def round_half_up(value: float) -> int:
    """Halves round up (729 for 728.5), unlike round()'s half-to-even."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class PageConfig:
    width: int = 1240   # A4 at 150 dpi
    height: int = 1754
    margin: int = 40
    background: str = "#ffffff"

    @property
    def usable_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def usable_height(self) -> float:
        return self.height - 2 * self.margin


A4 = PageConfig()


@dataclass(frozen=True)
class PanelRect:
    x: float
    y: float
    width: float
    height: float

    def box(self) -> Tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) for Pillow."""
        return (
            round_half_up(self.x),
            round_half_up(self.y),
            round_half_up(self.x + self.width),
            round_half_up(self.y + self.height),
        )


def parse_size(size: str) -> Tuple[float, float]:
    """'832x1248', '2:3' or '1456×720' -> (w, h)."""
    m = _SIZE_RE.match(size or "")
    if not m:
        raise ValueError(f"invalid slot size: {size!r}")
    w, h = float(m.group(1)), float(m.group(2))
    if w <= 0 or h <= 0:
        raise ValueError(f"invalid slot size: {size!r}")
    return w, h


def calculate_panel_position(page: PageConfig, slot: LayoutSlot) -> PanelRect:
    """
    Slot geometry on the page. Height comes from the slot's relative h, width from its aspect ratio;
    align picks the horizontal anchor and offsetX then shifts by a fraction of the usable width.
    """
    usable_w = page.usable_width
    usable_h = page.usable_height

    y = page.margin + slot.y * usable_h
    height = slot.h * usable_h
    w_ratio, h_ratio = parse_size(slot.size)
    width = height * (w_ratio / h_ratio)

    if slot.align == "left":
        x = float(page.margin)
    elif slot.align == "right":
        x = page.width - page.margin - width
    else:
        x = page.margin + (usable_w - width) / 2

    if slot.offset_x:
        x += slot.offset_x * usable_w

    return PanelRect(x=x, y=y, width=width, height=height)
