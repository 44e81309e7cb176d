# comicsmith/features/regenerate/schemas.py
import re
from typing import List

from pydantic import Field

from comicsmith.schemas import CamelModel


class RegeneratePanelsParams(CamelModel):
    panel_ids: str = Field(..., min_length=1, description="Comma separated panel ids, e.g. 'panel3, panel5'")

    def ids(self) -> List[str]:
        out: List[str] = []
        for pid in re.split(r"[,\s]+", self.panel_ids):
            if pid and pid not in out:
                out.append(pid)
        return out
