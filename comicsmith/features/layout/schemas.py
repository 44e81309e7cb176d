# comicsmith/features/layout/schemas.py
from pydantic import Field

from comicsmith.lib.layouts import DEFAULT_PAGE_COUNT
from comicsmith.schemas import CamelModel


class SelectLayoutParams(CamelModel):
    page_count: int = Field(DEFAULT_PAGE_COUNT, ge=1, le=5, description="Pages in the finished comic (1-5)")
