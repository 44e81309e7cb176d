# comicsmith/features/panels/schemas.py
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from comicsmith.lib.layouts import DEFAULT_PAGE_COUNT
from comicsmith.schemas import CamelModel


class GeneratePanelsParams(CamelModel):
    story_context: str = Field(..., min_length=1, description="The story to turn into panels")
    genre: Optional[str] = None
    page_count: int = Field(DEFAULT_PAGE_COUNT, ge=1, le=5)
    seed: Optional[int] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)


class DraftPanel(BaseModel):
    """One panel as the model writes it; lenient about key spelling."""

    model_config = ConfigDict(extra="ignore")

    panel_id: Optional[str] = Field(None, validation_alias=AliasChoices("panelId", "panelid", "panel_id", "id"))
    description: str = Field(..., min_length=1)
    camera_angle: Optional[str] = Field(None, validation_alias=AliasChoices("cameraAngle", "camera_angle"))
    context_image_refs: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("contextImageRefs", "contextImages", "context_image_refs"),
    )
