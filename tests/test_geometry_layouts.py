# tests/test_geometry_layouts.py
import pytest

from comicsmith.features.layout.service import select_layout
from comicsmith.lib.geometry import A4, PageConfig, PanelRect, calculate_panel_position, parse_size
from comicsmith.lib.layouts import (
    LAYOUTS,
    auto_layout,
    camera_angles,
    layout_for_page_count,
    slot_positions,
)
from comicsmith.schemas import LayoutSlot


def test_left_aligned_portrait_slot_on_a4():
    slot = LayoutSlot(slot_id="s", y=0.0, h=0.6, size="2:3", align="left", offset_x=0)
    rect = calculate_panel_position(A4, slot)
    assert rect.y == pytest.approx(40)
    assert rect.height == pytest.approx(1004.4)
    assert rect.width == pytest.approx(669.6)
    assert rect.x == pytest.approx(40)


def test_center_and_right_alignment_with_offset():
    page = PageConfig(width=1000, height=1000, margin=0)
    center = calculate_panel_position(page, LayoutSlot(slot_id="s", y=0.1, h=0.5, size="1x1"))
    assert (center.x, center.y, center.width) == pytest.approx((250, 100, 500))
    right = calculate_panel_position(
        page, LayoutSlot(slot_id="s", y=0, h=0.5, size="1x1", align="right", offset_x=-0.1)
    )
    assert right.x == pytest.approx(1000 - 500 - 100)


@pytest.mark.parametrize("text,expected", [("832x1248", (832, 1248)), ("2:3", (2, 3)), ("1456×720", (1456, 720))])
def test_parse_size(text, expected):
    assert parse_size(text) == expected


def test_parse_size_rejects_garbage():
    with pytest.raises(ValueError):
        parse_size("wide")


def test_panel_box_rounds_halves_up():
    assert PanelRect(40.5, 2.5, 100.0, 10.0).box() == (41, 3, 141, 13)


@pytest.mark.parametrize("layout", list(LAYOUTS.values()), ids=lambda l: l.name)
def test_layouts_are_consistent_and_fit_the_page(layout):
    assert sum(layout.panels_per_page) == layout.total_panels
    assert len(layout.pages) == layout.page_count
    for slots in layout.pages:
        rects = [calculate_panel_position(A4, s) for s in slots]
        for r in rects:
            left, top, right, bottom = r.box()
            assert left >= A4.margin - 1 and right <= A4.width - A4.margin + 1
            assert top >= A4.margin - 1 and bottom <= A4.height - A4.margin + 1


def test_layout_selection_by_page_count():
    assert layout_for_page_count(1).total_panels == 1
    assert layout_for_page_count(3).panels_per_page == [3, 3, 2]
    assert layout_for_page_count(4).total_panels == 12
    assert layout_for_page_count(5).total_panels == 14
    # no two-page template
    assert layout_for_page_count(2).name == "three-page-story"


@pytest.mark.parametrize("panels,name", [
    (1, "single-panel"), (2, "three-page-story"), (8, "three-page-story"),
    (12, "four-page-story"), (14, "five-page-story"), (20, "three-page-story"),
])
def test_auto_layout(panels, name):
    assert auto_layout(panels).name == name


def test_camera_angle_tables_cover_every_panel():
    assert camera_angles(3) == [
        "establishing-shot", "medium-shot", "close-up", "two-shot",
        "over-shoulder", "low-angle", "high-angle", "wide-shot",
    ]
    for count in (1, 3, 4, 5):
        assert len(camera_angles(count)) == layout_for_page_count(count).total_panels
    assert camera_angles(2) == camera_angles(3)


def test_slot_positions_number_pages_and_panels():
    positions = slot_positions(layout_for_page_count(3))
    assert [(p, n) for p, n, _ in positions] == [(1, 1), (1, 2), (1, 3), (2, 1), (2, 2), (2, 3), (3, 1), (3, 2)]


def test_select_layout_reports_the_fallback():
    exact = select_layout(4)
    assert (exact["layoutName"], exact["totalPanels"]) == ("four-page-story", 12)
    assert "requestedPageCount" not in exact

    fallback = select_layout(2)
    assert fallback["layoutName"] == "three-page-story"
    assert fallback["pageCount"] == 3
    assert fallback["panelsPerPage"] == [3, 3, 2]
    assert fallback["requestedPageCount"] == 2
