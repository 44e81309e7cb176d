# comicsmith/schemas.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_CONTEXT_REFS = 4
COVER_PANEL_ID = "panel1"

CameraAngle = Literal[
    "establishing-shot",
    "medium-shot",
    "close-up",
    "two-shot",
    "over-shoulder",
    "low-angle",
    "high-angle",
    "wide-shot",
    "dutch-angle",
    "bird-eye-view",
]
ComicStatus = Literal["draft", "generating", "completed", "failed"]
BubbleType = Literal["speech", "thought", "shout", "whisper"]
PlacementType = Literal["title", "narration", "speech"]
Align = Literal["left", "center", "right"]


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    """Python attributes stay snake_case; JSON documents and tool payloads use camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Position(CamelModel):
    x: float
    y: float


# --- Layout ---

class LayoutSlot(CamelModel):
    slot_id: str
    x: float = 0.0
    y: float = Field(..., ge=0.0, le=1.0)
    h: float = Field(..., gt=0.0, le=1.0)
    size: str = Field(..., description='aspect "WxH" or "W:H"')
    align: Align = "center"
    offset_x: Optional[float] = None


class Layout(CamelModel):
    name: str
    page_count: int = Field(..., ge=1, le=5)
    panels_per_page: List[int]
    pages: List[List[LayoutSlot]]

    @model_validator(mode="after")
    def _pages_match_counts(self):
        if len(self.panels_per_page) != self.page_count or len(self.pages) != self.page_count:
            raise ValueError(f"layout {self.name}: expected {self.page_count} pages")
        for i, (count, slots) in enumerate(zip(self.panels_per_page, self.pages), start=1):
            if len(slots) != count:
                raise ValueError(f"layout {self.name}: page {i} has {len(slots)} slots, expected {count}")
        return self

    @property
    def total_panels(self) -> int:
        return sum(self.panels_per_page)


# --- Comic aggregate ---

class Dialogue(CamelModel):
    order_index: int = Field(..., ge=0)
    speaker_char_id: Optional[str] = None
    speaker: Optional[str] = None
    text: str = Field(..., min_length=1)
    bubble_type: BubbleType = "speech"
    position: Optional[Position] = None


class TextPlacement(CamelModel):
    type: PlacementType
    text: str
    position: Position
    tail: Optional[Position] = None
    speaker: Optional[str] = None
    reading_order: int = Field(..., ge=1)


class Character(CamelModel):
    char_id: str
    display_name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    image_width: int = 832
    image_height: int = 1248
    context_image_refs: List[str] = Field(default_factory=list)
    prompt: str = ""
    generated_image_url: Optional[str] = None
    external_image_id: Optional[str] = None


class Panel(CamelModel):
    panel_id: str
    page_number: int = Field(..., ge=1)
    panel_number_on_page: int = Field(..., ge=1)
    description: str
    camera_angle: CameraAngle
    image_width: int = 832
    image_height: int = 1248
    context_image_refs: List[str] = Field(default_factory=list)
    prompt: str = ""
    generated_image_url: Optional[str] = None
    external_image_id: Optional[str] = None
    title: Optional[str] = None
    narration: Optional[str] = None
    sound_effects: List[str] = Field(default_factory=list)
    dialogue: List[Dialogue] = Field(default_factory=list)
    text_placements: List[TextPlacement] = Field(default_factory=list)
    rendered_image_url: Optional[str] = None

    @field_validator("context_image_refs")
    @classmethod
    def _cap_refs(cls, v: List[str]) -> List[str]:
        if len(v) > MAX_CONTEXT_REFS:
            raise ValueError(f"at most {MAX_CONTEXT_REFS} context image refs allowed, got {len(v)}")
        return v

    @field_validator("dialogue")
    @classmethod
    def _dense_order(cls, v: List[Dialogue]) -> List[Dialogue]:
        indexes = sorted(d.order_index for d in v)
        if indexes != list(range(len(v))):
            raise ValueError("dialogue orderIndex must be unique, dense and start at 0")
        return sorted(v, key=lambda d: d.order_index)

    @model_validator(mode="after")
    def _cover_has_no_dialogue(self):
        if self.panel_id == COVER_PANEL_ID and self.dialogue:
            raise ValueError("panel1 is the cover and cannot carry dialogue")
        return self

    @property
    def has_text(self) -> bool:
        return bool(self.title or self.narration or self.dialogue)


class Comic(CamelModel):
    comic_id: str
    title: Optional[str] = None
    genre: Optional[str] = None
    tone: Optional[str] = None
    story_context: str = ""
    page_count: int = Field(3, ge=1, le=5)
    layout_name: Optional[str] = None
    status: ComicStatus = "draft"
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)
    characters: List[Character] = Field(default_factory=list)
    panels: List[Panel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self):
        for label, ids in (
            ("character", [c.char_id for c in self.characters]),
            ("panel", [p.panel_id for p in self.panels]),
        ):
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate {label} ids: {ids}")
        return self

    def panel(self, panel_id: str) -> Optional[Panel]:
        return next((p for p in self.panels if p.panel_id == panel_id), None)

    def character(self, char_id: str) -> Optional[Character]:
        return next((c for c in self.characters if c.char_id == char_id), None)


class ComicInput(CamelModel):
    title: Optional[str] = None
    genre: Optional[str] = None
    tone: Optional[str] = None
    story_context: str = ""
    page_count: int = Field(3, ge=1, le=5)
    layout_name: Optional[str] = None


PANEL_MUTABLE_FIELDS = frozenset({
    "description",
    "prompt",
    "camera_angle",
    "context_image_refs",
    "generated_image_url",
    "external_image_id",
    "dialogue",
    "title",
    "narration",
    "sound_effects",
    "text_placements",
    "rendered_image_url",
})

CHARACTER_MUTABLE_FIELDS = frozenset({
    "display_name",
    "description",
    "prompt",
    "context_image_refs",
    "generated_image_url",
    "external_image_id",
})
