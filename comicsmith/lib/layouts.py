# comicsmith/lib/layouts.py
from __future__ import annotations

from typing import Dict, List, Tuple

from comicsmith.schemas import Layout, LayoutSlot

DEFAULT_PAGE_COUNT = 3

# --- Page templates (relative to the usable A4 area) ---

def _cover() -> List[LayoutSlot]:
    return [LayoutSlot(slot_id="slot1", size="832x1248", y=0.02, h=0.96)]

def _hero_top() -> List[LayoutSlot]:
    return [
        LayoutSlot(slot_id="slot1", size="1456x720", y=0.02, h=0.34),
        LayoutSlot(slot_id="slot2", size="720x1456", y=0.40, h=0.56, align="left", offset_x=0.042),
        LayoutSlot(slot_id="slot3", size="720x1456", y=0.40, h=0.56, align="right", offset_x=-0.042),
    ]

def _wide_stack() -> List[LayoutSlot]:
    return [
        LayoutSlot(slot_id="slot1", size="1456x720", y=0.03, h=0.30),
        LayoutSlot(slot_id="slot2", size="1456x720", y=0.35, h=0.30),
        LayoutSlot(slot_id="slot3", size="1456x720", y=0.67, h=0.30),
    ]

def _two_wide() -> List[LayoutSlot]:
    return [
        LayoutSlot(slot_id="slot1", size="1184x880", y=0.02, h=0.47),
        LayoutSlot(slot_id="slot2", size="1184x880", y=0.51, h=0.47),
    ]


LAYOUTS: Dict[str, Layout] = {
    layout.name: layout
    for layout in (
        Layout(name="single-panel", page_count=1, panels_per_page=[1], pages=[_cover()]),
        Layout(
            name="three-page-story",
            page_count=3,
            panels_per_page=[3, 3, 2],
            pages=[_hero_top(), _wide_stack(), _two_wide()],
        ),
        Layout(
            name="four-page-story",
            page_count=4,
            panels_per_page=[3, 3, 3, 3],
            pages=[_hero_top(), _wide_stack(), _hero_top(), _wide_stack()],
        ),
        Layout(
            name="five-page-story",
            page_count=5,
            panels_per_page=[3, 3, 3, 3, 2],
            pages=[_hero_top(), _wide_stack(), _hero_top(), _wide_stack(), _two_wide()],
        ),
    )
}

_BY_PAGE_COUNT = {layout.page_count: layout.name for layout in LAYOUTS.values()}

# Positional camera angles: panel i of an N-page comic always gets entry i.
_FOUR_PAGE_ANGLES = [
    "establishing-shot", "medium-shot", "close-up", "two-shot", "over-shoulder", "low-angle",
    "high-angle", "dutch-angle", "medium-shot", "close-up", "wide-shot", "bird-eye-view",
]
CAMERA_ANGLES: Dict[int, List[str]] = {
    1: ["establishing-shot"],
    3: [
        "establishing-shot", "medium-shot", "close-up", "two-shot",
        "over-shoulder", "low-angle", "high-angle", "wide-shot",
    ],
    4: _FOUR_PAGE_ANGLES,
    5: _FOUR_PAGE_ANGLES + ["low-angle", "wide-shot"],
}


def layout_for_page_count(page_count: int) -> Layout:
    """Exact table entry, else the three-page-story fallback (there is no two-page template)."""
    return LAYOUTS[_BY_PAGE_COUNT.get(page_count, "three-page-story")]


def auto_layout(total_panels: int) -> Layout:
    if total_panels <= 1:
        return LAYOUTS["single-panel"]
    if total_panels <= 8:
        return LAYOUTS["three-page-story"]
    if total_panels <= 12:
        return LAYOUTS["four-page-story"]
    if total_panels <= 14:
        return LAYOUTS["five-page-story"]
    return LAYOUTS["three-page-story"]


def camera_angles(page_count: int) -> List[str]:
    return CAMERA_ANGLES[layout_for_page_count(page_count).page_count]


def slot_positions(layout: Layout) -> List[Tuple[int, int, LayoutSlot]]:
    """Flatten to (pageNumber, panelNumberOnPage, slot) in reading order."""
    out = []
    for page_no, slots in enumerate(layout.pages, start=1):
        for idx, slot in enumerate(slots, start=1):
            out.append((page_no, idx, slot))
    return out
