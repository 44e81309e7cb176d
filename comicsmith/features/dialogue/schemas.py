# comicsmith/features/dialogue/schemas.py
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from comicsmith.schemas import CamelModel


class GenerateDialogueParams(CamelModel):
    genre: Optional[str] = None
    tone: Optional[str] = None
    story_context: Optional[str] = Field(None, description="Defaults to the comic's story")
    seed: Optional[int] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)


class DraftLine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    speaker: Optional[str] = None
    text: Optional[str] = None
    type: Optional[str] = Field(None, validation_alias=AliasChoices("type", "bubbleType"))


class DraftPanelText(BaseModel):
    model_config = ConfigDict(extra="ignore")

    panel_id: str = Field(..., validation_alias=AliasChoices("panelId", "panelid", "panel_id", "id"))
    title: Optional[str] = None
    dialogue: List[DraftLine] = Field(default_factory=list)
    narration: Optional[str] = None
    sound_effects: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("soundEffects", "sound_effects", "sfx")
    )
