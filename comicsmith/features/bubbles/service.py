# comicsmith/features/bubbles/service.py
from typing import Any, Dict, List

import requests

from comicsmith.agent.session import ToolContext
from comicsmith.errors import NotFoundError
from comicsmith.lib.bubbles import render_placements
from comicsmith.lib.imaging import encode_png, fetch_image_bytes_async, open_image
from comicsmith.logger import get_logger

from .schemas import RenderBubblesParams

log = get_logger(__name__)

RENDERED_FOLDER = "comic/rendered"


async def render_bubbles(params: RenderBubblesParams, ctx: ToolContext) -> Dict[str, Any]:
    comic_id = ctx.require_comic_id()
    comic = ctx.store.get_comic(comic_id)
    if params.panel_id:
        panel = comic.panel(params.panel_id)
        if panel is None:
            raise NotFoundError(
                f"panel {params.panel_id} not found",
                details={"availablePanels": [p.panel_id for p in comic.panels]},
            )
        targets = [panel]
    else:
        targets = [p for p in comic.panels if p.text_placements]
    if not targets:
        raise NotFoundError("No text placements found. Run place_dialogue_with_vision first.")

    overrides = params.source_map or {}
    rendered: Dict[str, str] = {}
    skipped: List[Dict[str, Any]] = []
    for panel in targets:
        url = overrides.get(panel.panel_id) or panel.generated_image_url
        if not url:
            skipped.append({"panelId": panel.panel_id, "reason": "no image"})
            continue
        if not panel.text_placements:
            skipped.append({"panelId": panel.panel_id, "reason": "no placements"})
            continue
        try:
            data = await fetch_image_bytes_async(url, uploader=ctx.uploader)
            img = open_image(data)
        except (requests.RequestException, OSError, ValueError) as e:
            log.warning(f"{panel.panel_id}: could not load {url}: {e}")
            skipped.append({"panelId": panel.panel_id, "reason": f"image unavailable: {e}"})
            continue

        out = render_placements(img, panel.text_placements)
        asset = await ctx.uploader.upload_async(encode_png(out), panel.panel_id, RENDERED_FOLDER)
        ctx.store.update_panel_field(comic_id, panel.panel_id, "rendered_image_url", asset.url)
        rendered[panel.panel_id] = asset.url
        log.info(f"{panel.panel_id}: rendered {len(panel.text_placements)} text elements")

    if not rendered:
        raise NotFoundError("No panels could be rendered", details={"skipped": skipped})

    return {
        "success": True,
        "comicId": comic_id,
        "renderedCount": len(rendered),
        "panels": [{"panelId": pid, "url": url} for pid, url in rendered.items()],
        "sourceMap": rendered,
        "skipped": skipped,
        "message": f"Rendered text onto {len(rendered)} panels. Next: compose pages.",
    }
