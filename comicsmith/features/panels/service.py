# comicsmith/features/panels/service.py
from typing import Any, Dict, List

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from comicsmith.agent.session import ToolContext
from comicsmith.errors import ParseError
from comicsmith.lib import openai_client
from comicsmith.lib.geometry import parse_size
from comicsmith.lib.json_tools import extract_json
from comicsmith.lib.layouts import camera_angles, layout_for_page_count, slot_positions
from comicsmith.lib.refs import char_id, normalize_ref, panel_id, panel_number, panel_ref
from comicsmith.logger import get_logger
from comicsmith.schemas import MAX_CONTEXT_REFS, ComicInput, Layout, Panel

from .prompt import SYSTEM, build_panels_prompt
from .schemas import DraftPanel, GeneratePanelsParams

log = get_logger(__name__)

PANEL_STYLE = "comic book style, high quality, detailed"
COVER_CHARACTERS = (char_id(1), char_id(2))

_DRAFTS = TypeAdapter(List[DraftPanel])


def parse_drafts(raw: str) -> List[DraftPanel]:
    data = extract_json(raw)
    if isinstance(data, dict):
        data = data.get("panels")
    if not isinstance(data, list) or not data:
        raise ParseError("Failed to generate valid panel descriptions", raw=raw)
    try:
        return _DRAFTS.validate_python(data)
    except PydanticValidationError as e:
        raise ParseError("Failed to generate valid panel descriptions", raw=raw, details={"errors": e.error_count()}) from e


def _context_refs(draft: DraftPanel, index: int) -> List[str]:
    """
    Keep character refs and refs to earlier panels only. The cover always carries the two leads;
    every later panel leads with the previous panel when it does not already reference it.
    """
    refs: List[str] = []
    for raw in draft.context_image_refs:
        ref = normalize_ref(raw)
        if ref is None or ref in refs:
            continue
        n = panel_number(ref)
        if n is not None and not 1 <= n <= index:
            continue
        refs.append(ref)

    if index == 0:
        refs = list(COVER_CHARACTERS) + [r for r in refs if r not in COVER_CHARACTERS]
    elif panel_ref(index) not in refs:
        refs.insert(0, panel_ref(index))
    return refs[:MAX_CONTEXT_REFS]


def build_panels(drafts: List[DraftPanel], layout: Layout) -> List[Panel]:
    angles = camera_angles(layout.page_count)
    panels: List[Panel] = []
    for i, (draft, (page_no, on_page, slot)) in enumerate(zip(drafts, slot_positions(layout))):
        angle = angles[i % len(angles)]
        if draft.camera_angle and draft.camera_angle != angle:
            log.debug(f"panel{i + 1}: camera angle {draft.camera_angle} overridden with {angle}")
        width, height = parse_size(slot.size)
        description = draft.description.strip()
        panels.append(Panel(
            panel_id=panel_id(i + 1),
            page_number=page_no,
            panel_number_on_page=on_page,
            description=description,
            camera_angle=angle,
            image_width=int(width),
            image_height=int(height),
            context_image_refs=_context_refs(draft, i),
            prompt=f"{description}, {angle} camera angle, {PANEL_STYLE}",
        ))
    return panels


async def generate_panels(params: GeneratePanelsParams, ctx: ToolContext) -> Dict[str, Any]:
    layout = layout_for_page_count(params.page_count)
    total = layout.total_panels
    prompt = build_panels_prompt(
        story_context=params.story_context,
        genre=params.genre,
        total_panels=total,
        panels_per_page=layout.panels_per_page,
        camera_angles=camera_angles(layout.page_count),
    )
    raw = await openai_client.complete_text(
        prompt,
        system=SYSTEM,
        temperature=0.8 if params.temperature is None else params.temperature,
        seed=params.seed,
    )
    drafts = parse_drafts(raw)
    if len(drafts) < total:
        raise ParseError(
            f"Failed to generate valid panel descriptions: expected {total} panels, got {len(drafts)}",
            raw=raw,
            details={"expectedPanels": total, "receivedPanels": len(drafts)},
        )
    if len(drafts) > total:
        log.info(f"model returned {len(drafts)} panels, keeping the first {total}")

    panels = build_panels(drafts[:total], layout)
    comic_id = ctx.store.create_comic(ComicInput(
        story_context=params.story_context,
        genre=params.genre,
        page_count=layout.page_count,
        layout_name=layout.name,
    ))
    ctx.store.replace_panels(comic_id, panels)
    ctx.session.comic_id = comic_id
    log.info(f"comic {comic_id}: {len(panels)} panels on {layout.name}")

    return {
        "success": True,
        "comicId": comic_id,
        "layout": layout.name,
        "pageCount": layout.page_count,
        "panelsPerPage": layout.panels_per_page,
        "totalPanels": len(panels),
        "panels": [
            p.model_dump(
                by_alias=True,
                include={"panel_id", "page_number", "panel_number_on_page", "description", "camera_angle",
                         "context_image_refs", "prompt", "image_width", "image_height"},
            )
            for p in panels
        ],
        "message": f"Generated {len(panels)} panels. Next: generate characters.",
    }
