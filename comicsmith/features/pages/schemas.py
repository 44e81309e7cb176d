# comicsmith/features/pages/schemas.py
from typing import Dict, Optional

from pydantic import Field

from comicsmith.schemas import CamelModel


class ComposePagesParams(CamelModel):
    source_map: Optional[Dict[str, str]] = Field(None, description="panelId -> image URL, wins over stored images")
    page_count: Optional[int] = Field(None, ge=1, le=5, description="Force a layout; default picks by panel count")
    use_text_images: bool = Field(True, description="Prefer panels with rendered text")
    export_pdf: bool = Field(False, description="Also bind the pages into a PDF")
