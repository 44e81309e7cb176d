# comicsmith/agent/session.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from comicsmith.agent.memory import Memory
from comicsmith.errors import NotFoundError
from comicsmith.lib.store import ComicStore
from comicsmith.lib.uploader import AssetUploader


@dataclass
class SessionState:
    """Everything one conversation carries between turns. Passed explicitly; never global."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    comic_id: Optional[str] = None
    history: List[Dict[str, str]] = field(default_factory=list)
    last_image_gen: Optional[Dict[str, Any]] = None
    page_urls: List[str] = field(default_factory=list)
    panel_urls: List[str] = field(default_factory=list)
    rendered_map: Dict[str, str] = field(default_factory=dict)

    def remember_turn(self, user: str, assistant: str, limit: int = 10) -> None:
        self.history.append({"role": "user", "content": user})
        self.history.append({"role": "assistant", "content": assistant})
        # FIFO trim
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]

    def last_source_map(self, text_images: bool = False) -> Optional[Dict[str, str]]:
        """sourceMap of the last image generation; with text_images, rendered panels override raw ones."""
        base = dict((self.last_image_gen or {}).get("sourceMap") or {})
        if text_images:
            base.update(self.rendered_map)
        return base or None

    def clear_turn_outputs(self) -> None:
        self.page_urls = []
        self.panel_urls = []


@dataclass
class ToolContext:
    store: ComicStore
    uploader: AssetUploader
    memory: Memory
    session: SessionState

    def require_comic_id(self) -> str:
        """The session's comic, else the most recently written one (resuming after a restart)."""
        if self.session.comic_id and self.store.exists(self.session.comic_id):
            return self.session.comic_id
        latest = self.store.latest_comic_id()
        if latest is None:
            raise NotFoundError("No comic found. Please generate panels first.")
        self.session.comic_id = latest
        return latest
