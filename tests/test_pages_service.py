# tests/test_pages_service.py
import pytest

from conftest import tiny_png
from comicsmith.errors import NotFoundError
from comicsmith.features.pages.schemas import ComposePagesParams
from comicsmith.features.pages.service import compose_pages, resolve_panel_urls
from comicsmith.lib.geometry import A4
from comicsmith.lib.imaging import fetch_image_bytes, image_size


@pytest.fixture
def illustrated(ctx, seeded):
    for panel in ctx.store.get_comic(seeded).panels:
        asset = ctx.uploader.upload(tiny_png(52, 78), panel.panel_id, "comic/panels")
        ctx.store.update_panel_field(seeded, panel.panel_id, "generated_image_url", asset.url)
    return seeded


@pytest.mark.asyncio
async def test_eight_panels_make_three_pages(ctx, illustrated):
    out = await compose_pages(ComposePagesParams(), ctx)
    assert out["layout"] == "three-page-story"
    assert out["totalPages"] == 3
    assert [p["page"] for p in out["pages"]] == [1, 2, 3]
    assert out["pages"][0]["url"].endswith("/outputs/comic/pages/page_1.png")
    assert ctx.store.get_comic(illustrated).status == "completed"

    page = fetch_image_bytes(out["pages"][2]["url"], uploader=ctx.uploader)
    assert image_size(page) == (A4.width, A4.height)


@pytest.mark.asyncio
async def test_page_count_override(ctx, illustrated):
    out = await compose_pages(ComposePagesParams(page_count=1), ctx)
    assert out["layout"] == "single-panel"
    assert out["totalPages"] == 1


@pytest.mark.asyncio
async def test_export_pdf(ctx, illustrated):
    out = await compose_pages(ComposePagesParams(export_pdf=True), ctx)
    assert out["pdfUrl"].endswith(f"/outputs/comic/pdf/{illustrated}.pdf")
    pdf = fetch_image_bytes(out["pdfUrl"], uploader=ctx.uploader)
    assert pdf.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_nothing_to_compose(ctx, seeded):
    with pytest.raises(NotFoundError, match="No panel URLs found"):
        await compose_pages(ComposePagesParams(), ctx)


@pytest.mark.asyncio
async def test_missing_image_leaves_an_empty_slot(ctx, illustrated):
    ctx.store.update_panel_field(illustrated, "panel4", "generated_image_url", "/nonexistent/panel4.png")
    out = await compose_pages(ComposePagesParams(), ctx)
    assert out["totalPages"] == 3


@pytest.mark.asyncio
async def test_source_map_alone_is_enough(ctx):
    url = ctx.uploader.upload(tiny_png(), "loose", "comic/panels").url
    out = await compose_pages(ComposePagesParams(source_map={"panel1": url, "panel2": url}), ctx)
    assert out["success"] is True
    assert "comicId" not in out


def test_rendered_images_win_when_requested(ctx, illustrated):
    ctx.store.update_panel_field(illustrated, "panel2", "rendered_image_url", "http://testserver/outputs/r2.png")
    comic = ctx.store.get_comic(illustrated)

    with_text = dict(resolve_panel_urls(comic, None, True))
    raw = dict(resolve_panel_urls(comic, None, False))
    assert with_text["panel2"] == "http://testserver/outputs/r2.png"
    assert raw["panel2"] == comic.panel("panel2").generated_image_url

    overridden = dict(resolve_panel_urls(comic, {"panel2": "http://x/p2.png"}, True))
    assert overridden["panel2"] == "http://x/p2.png"


def test_source_map_without_comic_keeps_panel_keys_in_order():
    got = resolve_panel_urls(None, {"panel10": "u10", "char_1": "c", "panel2": "u2", "panel_3": "bad"}, True)
    assert got == [("panel2", "u2"), ("panel10", "u10")]
