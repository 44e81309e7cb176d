# comicsmith/features/edit/schemas.py
from typing import Any, Dict, List, Literal, Union

from pydantic import Field

from comicsmith.schemas import CamelModel

EditValue = Union[str, int, float, bool, List[Any], Dict[str, Any], None]


class EditPanelParams(CamelModel):
    target_type: Literal["panel", "character"] = "panel"
    target_id: str = Field(..., min_length=1, description="panelN or char_N")
    field: str = Field(..., min_length=1, description="Field to change, e.g. description, dialogue, narration")
    value: EditValue = Field(None, description="New value for the field")
