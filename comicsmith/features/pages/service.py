# comicsmith/features/pages/service.py
from typing import Any, Dict, List, Optional, Tuple

import requests
from PIL import Image, ImageDraw

from comicsmith.agent.session import ToolContext
from comicsmith.errors import NotFoundError
from comicsmith.lib.bubbles import load_font
from comicsmith.lib.geometry import A4, PageConfig, calculate_panel_position
from comicsmith.lib.imaging import encode_png, fetch_image_bytes_async, open_image
from comicsmith.lib.layouts import auto_layout, layout_for_page_count
from comicsmith.lib.pdf import make_pdf
from comicsmith.lib.refs import panel_number
from comicsmith.logger import get_logger
from comicsmith.schemas import Comic, Layout

from .schemas import ComposePagesParams

log = get_logger(__name__)

PAGES_FOLDER = "comic/pages"
PDF_FOLDER = "comic/pdf"
PAGE_BORDER = 3
PANEL_BORDER = 2
FOOTER_FONT_SIZE = 24
FOOTER_COLOR = "#666666"


def resolve_panel_urls(
    comic: Optional[Comic], source_map: Optional[Dict[str, str]], use_text_images: bool
) -> List[Tuple[str, str]]:
    """(panelId, url) in panel order: sourceMap entry, else rendered image, else raw image."""
    overrides = source_map or {}
    if comic is None or not comic.panels:
        ids = sorted((k for k in overrides if panel_number(k) is not None and not k.startswith("panel_")), key=panel_number)
        return [(pid, overrides[pid]) for pid in ids]
    out: List[Tuple[str, str]] = []
    for p in comic.panels:
        url = overrides.get(p.panel_id)
        if not url and use_text_images:
            url = p.rendered_image_url
        url = url or p.generated_image_url
        if url:
            out.append((p.panel_id, url))
    return out


def draw_page_frame(page: Image.Image, cfg: PageConfig) -> None:
    draw = ImageDraw.Draw(page)
    draw.rectangle(
        (cfg.margin, cfg.margin, cfg.width - cfg.margin, cfg.height - cfg.margin),
        outline="black",
        width=PAGE_BORDER,
    )


def draw_footer(page: Image.Image, number: int, cfg: PageConfig) -> None:
    draw = ImageDraw.Draw(page)
    draw.text(
        (cfg.width / 2, cfg.height - 10),
        f"Page {number}",
        font=load_font("sans-bold", FOOTER_FONT_SIZE),
        fill=FOOTER_COLOR,
        anchor="ms",
    )


async def compose_page(
    ctx: ToolContext,
    layout: Layout,
    page_index: int,
    panels: List[Tuple[str, str]],
    cfg: PageConfig = A4,
) -> bytes:
    page = Image.new("RGB", (cfg.width, cfg.height), cfg.background)
    draw_page_frame(page, cfg)
    draw = ImageDraw.Draw(page)
    for slot, (pid, url) in zip(layout.pages[page_index], panels):
        rect = calculate_panel_position(cfg, slot)
        left, top, right, bottom = rect.box()
        try:
            data = await fetch_image_bytes_async(url, uploader=ctx.uploader)
            img = open_image(data).convert("RGB").resize((right - left, bottom - top), Image.LANCZOS)
            page.paste(img, (left, top))
        except (requests.RequestException, OSError, ValueError) as e:
            log.warning(f"page {page_index + 1}: {pid} unavailable ({e}), leaving slot empty")
            draw.rectangle((left, top, right, bottom), fill="#eeeeee")
        draw.rectangle((left, top, right, bottom), outline="black", width=PANEL_BORDER)
    draw_footer(page, page_index + 1, cfg)
    return encode_png(page)


async def compose_pages(params: ComposePagesParams, ctx: ToolContext) -> Dict[str, Any]:
    comic: Optional[Comic] = None
    try:
        comic = ctx.store.get_comic(ctx.require_comic_id())
    except NotFoundError:
        if not params.source_map:
            raise

    panels = resolve_panel_urls(comic, params.source_map, params.use_text_images)
    if not panels:
        raise NotFoundError("No panel URLs found. Please generate images first.")

    layout = layout_for_page_count(params.page_count) if params.page_count else auto_layout(len(panels))
    if len(panels) > layout.total_panels:
        log.warning(f"{len(panels)} panels but {layout.name} holds {layout.total_panels}; extras are dropped")
    log.info(f"composing {layout.page_count} pages with {layout.name}")

    pages: List[Dict[str, Any]] = []
    page_bytes: List[bytes] = []
    offset = 0
    for i, count in enumerate(layout.panels_per_page):
        data = await compose_page(ctx, layout, i, panels[offset: offset + count])
        offset += count
        asset = await ctx.uploader.upload_async(data, f"page_{i + 1}", PAGES_FOLDER)
        pages.append({"page": i + 1, "url": asset.url, "publicId": asset.external_id})
        page_bytes.append(data)

    out: Dict[str, Any] = {
        "success": True,
        "layout": layout.name,
        "totalPages": len(pages),
        "pages": pages,
        "message": f"Composed {len(pages)} pages.",
    }
    if comic is not None:
        out["comicId"] = comic.comic_id
        ctx.store.update_comic(comic.comic_id, status="completed")
    if params.export_pdf:
        pdf = await ctx.uploader.upload_async(make_pdf(page_bytes), comic.comic_id if comic else "comic", PDF_FOLDER, fmt="pdf")
        out["pdfUrl"] = pdf.url
    return out
