# comicsmith/features/bubbles/schemas.py
from typing import Dict, Optional

from pydantic import Field

from comicsmith.schemas import CamelModel


class RenderBubblesParams(CamelModel):
    panel_id: Optional[str] = Field(None, description="Only this panel; default every panel with placements")
    source_map: Optional[Dict[str, str]] = Field(None, description="panelId -> base image URL override")
