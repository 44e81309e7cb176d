# comicsmith/features/chat/schemas.py
from typing import List, Optional

from pydantic import Field

from comicsmith.schemas import CamelModel


class ChatRequest(CamelModel):
    message: Optional[str] = Field(None, description="What the user said")


class ChatResponse(CamelModel):
    response: str
    page_urls: Optional[List[str]] = None
    panel_urls: Optional[List[str]] = None


class OutputImage(CamelModel):
    filename: str
    url: str
    path: str
