# comicsmith/lib/store.py
from __future__ import annotations

import os
import uuid
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake

from comicsmith.errors import NotFoundError, ValidationError
from comicsmith.lib.jsonio import load_json, save_json_atomic
from comicsmith.lib.paths import comics_dir
from comicsmith.logger import get_logger
from comicsmith.schemas import (
    CHARACTER_MUTABLE_FIELDS,
    PANEL_MUTABLE_FIELDS,
    Character,
    Comic,
    ComicInput,
    Panel,
    utcnow,
)

log = get_logger(__name__)

_COMIC_FIELDS = frozenset({"title", "genre", "tone", "story_context", "page_count", "layout_name", "status"})


def _field_name(name: str) -> str:
    """Accept camelCase (wire) or snake_case (python) field names."""
    return to_snake(name.strip())


def _err_text(e: PydanticValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())


class ComicStore:
    """
    Single-writer JSON document store: one <comicId>.json per comic.
    Every operation loads from disk and writes back atomically; nothing is cached between calls.
    """

    def __init__(self, root: Optional[str] = None):
        self.root = root or comics_dir()
        os.makedirs(self.root, exist_ok=True)

    def _path(self, comic_id: str) -> str:
        if not comic_id or "/" in comic_id or "\\" in comic_id or comic_id.startswith("."):
            raise ValidationError(f"invalid comic id: {comic_id!r}")
        return os.path.join(self.root, f"{comic_id}.json")

    def _load(self, comic_id: str) -> Comic:
        data = load_json(self._path(comic_id))
        if data is None:
            raise NotFoundError(f"comic {comic_id} not found")
        return Comic.model_validate(data)

    def _save(self, comic: Comic) -> Comic:
        comic.updated_at = utcnow()
        save_json_atomic(self._path(comic.comic_id), comic.to_json_dict())
        return comic

    def _rebuild(self, comic: Comic, **changes: Any) -> Comic:
        # Re-validate the whole aggregate so invariants hold after every mutation
        data = comic.model_dump()
        data.update(changes)
        try:
            return Comic.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(_err_text(e)) from e

    # --- comic level ---

    def create_comic(self, data: ComicInput | Dict[str, Any] | None = None) -> str:
        inp = data if isinstance(data, ComicInput) else ComicInput.model_validate(data or {})
        comic_id = uuid.uuid4().hex[:12]
        comic = Comic(comic_id=comic_id, **inp.model_dump())
        self._save(comic)
        log.info(f"created comic {comic_id} ({comic.page_count} pages)")
        return comic_id

    def get_comic(self, comic_id: str) -> Comic:
        return self._load(comic_id)

    def exists(self, comic_id: Optional[str]) -> bool:
        return bool(comic_id) and os.path.exists(self._path(comic_id))

    def list_comics(self) -> List[str]:
        names = sorted(
            (f for f in os.listdir(self.root) if f.endswith(".json") and not f.startswith(".")),
            key=lambda f: os.path.getmtime(os.path.join(self.root, f)),
        )
        return [n[: -len(".json")] for n in names]

    def latest_comic_id(self) -> Optional[str]:
        ids = self.list_comics()
        return ids[-1] if ids else None

    def update_comic(self, comic_id: str, **fields: Any) -> Comic:
        changes = {}
        for name, value in fields.items():
            key = _field_name(name)
            if key not in _COMIC_FIELDS:
                raise ValidationError(f"comic field '{name}' is not mutable")
            changes[key] = value
        comic = self._rebuild(self._load(comic_id), **changes)
        return self._save(comic)

    def delete_comic(self, comic_id: str) -> None:
        path = self._path(comic_id)
        if not os.path.exists(path):
            raise NotFoundError(f"comic {comic_id} not found")
        os.remove(path)
        log.info(f"deleted comic {comic_id}")

    # --- bulk upserts ---

    def replace_characters(self, comic_id: str, characters: Iterable[Character | Dict[str, Any]]) -> Comic:
        comic = self._load(comic_id)
        incoming = [c if isinstance(c, Character) else Character.model_validate(c) for c in characters]
        merged = self._unique(incoming, key="char_id")
        comic = self._rebuild(comic, characters=[c.model_dump() for c in merged])
        return self._save(comic)

    def replace_panels(self, comic_id: str, panels: Iterable[Panel | Dict[str, Any]]) -> Comic:
        comic = self._load(comic_id)
        incoming = [p if isinstance(p, Panel) else Panel.model_validate(p) for p in panels]
        merged = self._unique(incoming, key="panel_id")
        comic = self._rebuild(comic, panels=[p.model_dump() for p in merged])
        return self._save(comic)

    @staticmethod
    def _unique(incoming: list, *, key: str) -> list:
        """
        The incoming set replaces the stored one wholesale; the generators always emit the full set.
        A repeated stable id keeps its first position and its last value.
        """
        return list({getattr(e, key): e for e in incoming}.values())

    # --- field updates ---

    def update_panel_field(self, comic_id: str, panel_id: str, field_name: str, value: Any) -> Panel:
        key = _field_name(field_name)
        if key not in PANEL_MUTABLE_FIELDS:
            raise ValidationError(
                f"panel field '{field_name}' is not mutable",
                details={"allowedFields": sorted(PANEL_MUTABLE_FIELDS)},
            )
        comic = self._load(comic_id)
        if comic.panel(panel_id) is None:
            raise NotFoundError(
                f"panel {panel_id} not found",
                details={"availablePanels": [p.panel_id for p in comic.panels]},
            )
        panels = [
            {**p.model_dump(), key: value} if p.panel_id == panel_id else p.model_dump()
            for p in comic.panels
        ]
        comic = self._save(self._rebuild(comic, panels=panels))
        return comic.panel(panel_id)

    def update_character_field(self, comic_id: str, char_id: str, field_name: str, value: Any) -> Character:
        key = _field_name(field_name)
        if key not in CHARACTER_MUTABLE_FIELDS:
            raise ValidationError(
                f"character field '{field_name}' is not mutable",
                details={"allowedFields": sorted(CHARACTER_MUTABLE_FIELDS)},
            )
        comic = self._load(comic_id)
        if comic.character(char_id) is None:
            raise NotFoundError(
                f"character {char_id} not found",
                details={"availableCharacters": [c.char_id for c in comic.characters]},
            )
        characters = [
            {**c.model_dump(), key: value} if c.char_id == char_id else c.model_dump()
            for c in comic.characters
        ]
        comic = self._save(self._rebuild(comic, characters=characters))
        return comic.character(char_id)

    # --- lookups ---

    def get_panel(self, comic_id: str, panel_id: str) -> Panel:
        panel = self._load(comic_id).panel(panel_id)
        if panel is None:
            raise NotFoundError(f"panel {panel_id} not found")
        return panel

    def get_character(self, comic_id: str, char_id: str) -> Character:
        character = self._load(comic_id).character(char_id)
        if character is None:
            raise NotFoundError(f"character {char_id} not found")
        return character
