# comicsmith/features/characters/schemas.py
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from comicsmith.schemas import CamelModel

DEFAULT_CHARACTER_COUNT = 2


class GenerateCharactersParams(CamelModel):
    count: int = Field(DEFAULT_CHARACTER_COUNT, ge=1, le=6, description="How many main characters to design")
    seed: Optional[int] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)


class DraftCharacter(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(None, validation_alias=AliasChoices("id", "charId", "char_id"))
    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "displayName", "display_name"))
    description: str = Field(..., min_length=1)
