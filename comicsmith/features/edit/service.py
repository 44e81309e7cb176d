# comicsmith/features/edit/service.py
from typing import Any, Dict, List

from pydantic.alias_generators import to_snake

from comicsmith.agent.session import ToolContext
from comicsmith.logger import get_logger
from comicsmith.schemas import Comic

from .schemas import EditPanelParams

log = get_logger(__name__)

_LIST_FIELDS = {"sound_effects", "context_image_refs"}


def _coerce_dialogue(value: Any, comic: Comic) -> List[Dict[str, Any]]:
    """Accept a single line, bare strings or partial objects; fill orderIndex and speaker ids."""
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    out: List[Dict[str, Any]] = []
    for i, item in enumerate(items):
        if isinstance(item, str):
            item = {"text": item}
        item = dict(item)
        if "orderIndex" not in item and "order_index" not in item:
            item["orderIndex"] = i
        speaker = item.get("speaker")
        if speaker and not (item.get("speakerCharId") or item.get("speaker_char_id")):
            match = next(
                (c for c in comic.characters if speaker.lower() in (c.char_id.lower(), c.display_name.lower())),
                None,
            )
            if match:
                item["speakerCharId"] = match.char_id
        out.append(item)
    return out


def coerce_value(field: str, value: Any, comic: Comic) -> Any:
    key = to_snake(field)
    if key == "dialogue":
        return _coerce_dialogue(value, comic)
    if key in _LIST_FIELDS and isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if hasattr(value, "to_json_dict"):
        return value.to_json_dict()
    return value


async def edit_panel(params: EditPanelParams, ctx: ToolContext) -> Dict[str, Any]:
    comic_id = ctx.require_comic_id()
    comic = ctx.store.get_comic(comic_id)
    key = to_snake(params.field)
    value = coerce_value(params.field, params.value, comic)

    if params.target_type == "character":
        before = comic.character(params.target_id)
        after = ctx.store.update_character_field(comic_id, params.target_id, params.field, value)
    else:
        before = comic.panel(params.target_id)
        after = ctx.store.update_panel_field(comic_id, params.target_id, params.field, value)

    old_value = _dump(getattr(before, key, None))
    new_value = _dump(getattr(after, key))
    log.info(f"comic {comic_id}: {params.target_type} {params.target_id}.{params.field} updated")
    return {
        "success": True,
        "comicId": comic_id,
        "targetType": params.target_type,
        "targetId": params.target_id,
        "field": params.field,
        "oldValue": old_value,
        "newValue": new_value,
        "message": f"Updated {params.field} on {params.target_id}. Regenerate its image if the change is visual.",
    }
