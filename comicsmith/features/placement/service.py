# comicsmith/features/placement/service.py
from typing import Any, Dict, List, Optional

import openai
import requests
from pydantic import ValidationError as PydanticValidationError

from comicsmith.agent.session import ToolContext
from comicsmith.errors import GenerationFailed, NotFoundError
from comicsmith.lib import openai_client
from comicsmith.lib.geometry import round_half_up
from comicsmith.lib.imaging import fetch_image_bytes_async, image_size
from comicsmith.lib.json_tools import extract_json
from comicsmith.logger import get_logger
from comicsmith.result import is_unrecoverable
from comicsmith.schemas import Panel, Position, TextPlacement

from .prompt import SYSTEM, build_placement_prompt
from .schemas import DraftPlacement, DraftPlacementResponse, PlaceDialogueParams

log = get_logger(__name__)

TITLE_TOP = 30
FETCH_TIMEOUT = 20
_SPEECH_ALIASES = {"speech", "dialogue", "thought", "shout", "whisper", "bubble"}


def title_placement(title: str, width: int) -> TextPlacement:
    return TextPlacement(type="title", text=title, position=Position(x=round_half_up(width / 2), y=TITLE_TOP), reading_order=1)


def parse_placements(raw: str) -> Optional[List[DraftPlacement]]:
    data = extract_json(raw)
    if isinstance(data, list):
        data = {"placements": data}
    if not isinstance(data, dict):
        return None
    try:
        return DraftPlacementResponse.model_validate(data).placements
    except PydanticValidationError as e:
        log.warning(f"placement JSON did not validate: {e.error_count()} errors")
        return None


def _clamp_point(x: float, y: float, width: int, height: int) -> Position:
    return Position(x=min(max(x, 0), width), y=min(max(y, 0), height))


def normalize_placements(drafts: List[DraftPlacement], panel: Panel, width: int, height: int) -> List[TextPlacement]:
    """
    Clamp model coordinates into the image, drop tails on narration, renumber reading order from 1.
    The title never comes from the model: it is pinned top-centre and read first.
    """
    ordered = sorted(enumerate(drafts), key=lambda t: (t[1].reading_order if t[1].reading_order is not None else 10**6, t[0]))
    out: List[TextPlacement] = [title_placement(panel.title, width)] if panel.title else []
    for _, d in ordered:
        kind = d.type.strip().lower()
        if kind in _SPEECH_ALIASES:
            kind = "speech"
        if kind not in ("narration", "speech"):
            continue
        text = d.text.strip()
        if not text:
            continue
        tail = None
        if kind == "speech" and d.tail is not None:
            tail = _clamp_point(d.tail.x, d.tail.y, width, height)
        out.append(TextPlacement(
            type=kind,
            text=text,
            position=_clamp_point(d.position.x, d.position.y, width, height),
            tail=tail,
            speaker=d.speaker if kind == "speech" else None,
            reading_order=len(out) + 1,
        ))
    return out


async def place_panel(panel: Panel, data: bytes, width: int, height: int) -> Optional[List[TextPlacement]]:
    """Placements for one panel; None when the model's answer is unusable."""
    if panel.title and not panel.narration and not panel.dialogue:
        return [title_placement(panel.title, width)]

    raw = await openai_client.complete_vision(
        build_placement_prompt(
            width=width,
            height=height,
            description=panel.description,
            title=panel.title,
            narration=panel.narration,
            dialogue=[(d.speaker or "Unknown", d.text) for d in panel.dialogue],
        ),
        data,
        system=SYSTEM,
    )
    drafts = parse_placements(raw)
    if drafts is None:
        return None
    return normalize_placements(drafts, panel, width, height)


async def place_dialogue(params: PlaceDialogueParams, ctx: ToolContext) -> Dict[str, Any]:
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
        targets = [p for p in comic.panels if p.has_text]

    overrides = params.source_map or {}
    results: List[Dict[str, Any]] = []
    skipped: List[Dict[str, Any]] = []
    failures: List[str] = []

    for panel in targets:
        if not panel.has_text:
            skipped.append({"panelId": panel.panel_id, "reason": "no text"})
            continue
        url = overrides.get(panel.panel_id) or panel.generated_image_url
        if not url:
            skipped.append({"panelId": panel.panel_id, "reason": "no image"})
            continue
        try:
            data = await fetch_image_bytes_async(url, uploader=ctx.uploader, timeout=FETCH_TIMEOUT)
            width, height = image_size(data)
        except (requests.RequestException, OSError, ValueError) as e:
            log.warning(f"{panel.panel_id}: could not fetch {url}: {e}")
            skipped.append({"panelId": panel.panel_id, "reason": f"image unavailable: {e}"})
            continue

        try:
            placements = await place_panel(panel, data, width, height)
        except openai.OpenAIError as e:
            if is_unrecoverable(str(e)):
                raise
            log.warning(f"{panel.panel_id}: vision call failed: {e}")
            failures.append(str(e))
            skipped.append({"panelId": panel.panel_id, "reason": f"vision call failed: {e}"})
            continue
        if placements is None:
            log.warning(f"{panel.panel_id}: unusable placement JSON, skipping")
            skipped.append({"panelId": panel.panel_id, "reason": "unparseable placement response"})
            continue

        ctx.store.update_panel_field(comic_id, panel.panel_id, "text_placements", [p.model_dump() for p in placements])
        results.append({
            "panelId": panel.panel_id,
            "panelWidth": width,
            "panelHeight": height,
            "placements": [p.to_json_dict() for p in placements],
        })

    if failures and not results:
        raise GenerationFailed(f"Vision placement failed for every panel: {failures[0]}")

    log.info(f"comic {comic_id}: placed text on {len(results)} panels, skipped {len(skipped)}")
    return {
        "success": True,
        "comicId": comic_id,
        "panelsProcessed": len(results),
        "results": results,
        "skipped": skipped,
        "message": "Text placed. Next: render the bubbles onto the panels." if results else "No panels needed text placement.",
    }
