# comicsmith/features/dialogue/service.py
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from comicsmith.agent.session import ToolContext
from comicsmith.errors import NotFoundError, ParseError
from comicsmith.lib import openai_client
from comicsmith.lib.json_tools import extract_json
from comicsmith.lib.refs import panel_id as make_panel_id
from comicsmith.lib.refs import panel_number
from comicsmith.logger import get_logger
from comicsmith.schemas import COVER_PANEL_ID, Character, Dialogue

from .prompt import SYSTEM, build_dialogue_prompt
from .schemas import DraftLine, DraftPanelText, GenerateDialogueParams

log = get_logger(__name__)

DEFAULT_TITLE = "Untitled Comic"
DEFAULT_GENRE = "general fiction"
DEFAULT_TONE = "dramatic"
MAX_LINES_PER_PANEL = 2
_BUBBLE_TYPES = {"speech", "thought", "shout", "whisper"}

_DRAFTS = TypeAdapter(List[DraftPanelText])


def parse_drafts(raw: str) -> Dict[str, DraftPanelText]:
    data = extract_json(raw)
    if isinstance(data, dict):
        data = data.get("panels")
    if not isinstance(data, list):
        raise ParseError("Failed to generate valid dialogue", raw=raw)
    try:
        drafts = _DRAFTS.validate_python(data)
    except PydanticValidationError as e:
        raise ParseError("Failed to generate valid dialogue", raw=raw, details={"errors": e.error_count()}) from e
    out: Dict[str, DraftPanelText] = {}
    for d in drafts:
        n = panel_number(d.panel_id)
        if n is not None:
            out[make_panel_id(n)] = d
    return out


def resolve_speaker(name: Optional[str], characters: List[Character]) -> Optional[Character]:
    """Match a speaker by display name (case-insensitive, first-name prefix allowed) or char id."""
    key = (name or "").strip().lower()
    if not key:
        return None
    for c in characters:
        if key in (c.char_id.lower(), c.display_name.lower()):
            return c
    for c in characters:
        if c.display_name.lower().split()[0] == key.split()[0]:
            return c
    return None


def build_dialogue(lines: List[DraftLine], characters: List[Character]) -> List[Dialogue]:
    out: List[Dialogue] = []
    for line in lines:
        text = (line.text or "").strip()
        if not text or not (line.speaker or "").strip():
            continue
        speaker = resolve_speaker(line.speaker, characters)
        out.append(Dialogue(
            order_index=len(out),
            speaker_char_id=speaker.char_id if speaker else None,
            speaker=speaker.display_name if speaker else line.speaker.strip(),
            text=text,
            bubble_type=line.type if line.type in _BUBBLE_TYPES else "speech",
        ))
        if len(out) == MAX_LINES_PER_PANEL:
            break
    return out


async def generate_dialogue(params: GenerateDialogueParams, ctx: ToolContext) -> Dict[str, Any]:
    comic_id = ctx.require_comic_id()
    comic = ctx.store.get_comic(comic_id)
    if not comic.panels:
        raise NotFoundError("No panels found. Please generate panels first.")
    if not comic.characters:
        raise NotFoundError("No characters found. Please generate characters before dialogue.")

    genre = params.genre or comic.genre or DEFAULT_GENRE
    tone = params.tone or comic.tone or DEFAULT_TONE
    raw = await openai_client.complete_text(
        build_dialogue_prompt(
            story_context=params.story_context or comic.story_context,
            genre=genre,
            tone=tone,
            characters=[(c.char_id, c.display_name) for c in comic.characters],
            panels=[(p.panel_id, p.description) for p in comic.panels],
        ),
        system=SYSTEM,
        temperature=0.8 if params.temperature is None else params.temperature,
        seed=params.seed,
    )
    drafts = parse_drafts(raw)
    if not drafts:
        raise ParseError("Failed to generate valid dialogue", raw=raw)

    title = DEFAULT_TITLE
    summary: List[Dict[str, Any]] = []
    for panel in comic.panels:
        draft = drafts.get(panel.panel_id)
        if panel.panel_id == COVER_PANEL_ID:
            title = ((draft.title if draft else None) or DEFAULT_TITLE).strip() or DEFAULT_TITLE
            ctx.store.update_panel_field(comic_id, panel.panel_id, "title", title)
            ctx.store.update_panel_field(comic_id, panel.panel_id, "dialogue", [])
            ctx.store.update_panel_field(comic_id, panel.panel_id, "narration", None)
            summary.append({"panelId": panel.panel_id, "title": title})
            continue
        if draft is None:
            log.info(f"{panel.panel_id}: no text from model, left silent")
            continue

        dialogue = build_dialogue(draft.dialogue, comic.characters)
        narration = None if dialogue else ((draft.narration or "").strip() or None)
        effects = [s.strip() for s in draft.sound_effects if s and s.strip()]
        ctx.store.update_panel_field(comic_id, panel.panel_id, "dialogue", [d.model_dump() for d in dialogue])
        ctx.store.update_panel_field(comic_id, panel.panel_id, "narration", narration)
        ctx.store.update_panel_field(comic_id, panel.panel_id, "sound_effects", effects)
        summary.append({
            "panelId": panel.panel_id,
            "dialogue": [{"speaker": d.speaker, "text": d.text} for d in dialogue],
            "narration": narration,
            "soundEffects": effects,
        })

    ctx.store.update_comic(comic_id, title=title, genre=genre, tone=tone)
    log.info(f"comic {comic_id}: dialogue written for {len(summary)} panels")
    return {
        "success": True,
        "comicId": comic_id,
        "title": title,
        "panelsUpdated": len(summary),
        "panels": summary,
        "message": "Dialogue added. Next: generate images.",
    }
