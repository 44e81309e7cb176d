# comicsmith/features/placement/schemas.py
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from comicsmith.schemas import CamelModel


class PlaceDialogueParams(CamelModel):
    panel_id: Optional[str] = Field(None, description="Only this panel; default every panel with text")
    source_map: Optional[Dict[str, str]] = Field(None, description="panelId -> image URL override")


class DraftPoint(BaseModel):
    x: float
    y: float


class DraftPlacement(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    text: str = ""
    position: DraftPoint
    tail: Optional[DraftPoint] = None
    speaker: Optional[str] = None
    reading_order: Optional[int] = Field(None, validation_alias=AliasChoices("readingOrder", "reading_order"))


class DraftPlacementResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    placements: List[DraftPlacement] = Field(default_factory=list)
