# comicsmith/features/images/schemas.py
from typing import Literal, Optional

from pydantic import Field

from comicsmith.schemas import MAX_CONTEXT_REFS, CamelModel

GenerateType = Literal["characters", "panels", "both"]


class GenerateImagesParams(CamelModel):
    generate_type: GenerateType = Field("both", description="characters, panels or both")
    specific_panel: Optional[str] = Field(None, description="Regenerate only this panel, e.g. panel3")
    seed: Optional[int] = Field(None, description="Base seed override")
    context_limit: Optional[int] = Field(None, ge=0, le=MAX_CONTEXT_REFS, description="Max context images per panel")
    simplify_prompts: bool = False
