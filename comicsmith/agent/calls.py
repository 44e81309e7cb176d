# comicsmith/agent/calls.py
"""
Tool calls as a closed set of variants, one per tool, discriminated by `name`.
Arguments arrive as JSON text from the model and are validated against the tool's schema here,
before anything runs.
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Dict, Literal, Type, Union, get_args

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from comicsmith.features.bubbles.schemas import RenderBubblesParams
from comicsmith.features.characters.schemas import GenerateCharactersParams
from comicsmith.features.dialogue.schemas import GenerateDialogueParams
from comicsmith.features.edit.schemas import EditPanelParams
from comicsmith.features.images.schemas import GenerateImagesParams
from comicsmith.features.layout.schemas import SelectLayoutParams
from comicsmith.features.pages.schemas import ComposePagesParams
from comicsmith.features.panels.schemas import GeneratePanelsParams
from comicsmith.features.placement.schemas import PlaceDialogueParams
from comicsmith.features.regenerate.schemas import RegeneratePanelsParams
from comicsmith.logger import get_logger
from comicsmith.result import Err, ErrorKind, Ok, Result

log = get_logger(__name__)


class SelectLayoutCall(BaseModel):
    name: Literal["select_comic_layout"]
    arguments: SelectLayoutParams


class GeneratePanelsCall(BaseModel):
    name: Literal["generate_panels"]
    arguments: GeneratePanelsParams


class GenerateCharactersCall(BaseModel):
    name: Literal["generate_characters"]
    arguments: GenerateCharactersParams


class GenerateDialogueCall(BaseModel):
    name: Literal["generate_dialogue"]
    arguments: GenerateDialogueParams


class GenerateImagesCall(BaseModel):
    name: Literal["generate_leonardo_images"]
    arguments: GenerateImagesParams


class PlaceDialogueCall(BaseModel):
    name: Literal["place_dialogue_with_vision"]
    arguments: PlaceDialogueParams


class RenderBubblesCall(BaseModel):
    name: Literal["render_dialogue_on_panels"]
    arguments: RenderBubblesParams


class ComposePagesCall(BaseModel):
    name: Literal["compose_pages"]
    arguments: ComposePagesParams


class EditPanelCall(BaseModel):
    name: Literal["edit_panel"]
    arguments: EditPanelParams


class RegeneratePanelsCall(BaseModel):
    name: Literal["regenerate_failed_panels"]
    arguments: RegeneratePanelsParams


ToolCall = Annotated[
    Union[
        SelectLayoutCall,
        GeneratePanelsCall,
        GenerateCharactersCall,
        GenerateDialogueCall,
        GenerateImagesCall,
        PlaceDialogueCall,
        RenderBubblesCall,
        ComposePagesCall,
        EditPanelCall,
        RegeneratePanelsCall,
    ],
    Field(discriminator="name"),
]

_CALL = TypeAdapter(ToolCall)

CALL_SCHEMAS: Dict[str, Type[BaseModel]] = {
    get_args(variant.model_fields["name"].annotation)[0]: variant.model_fields["arguments"].annotation
    for variant in get_args(get_args(ToolCall)[0])
}


def _known_keys(schema: Type[BaseModel]) -> set:
    keys = set()
    for name, f in schema.model_fields.items():
        keys.add(name)
        if f.alias:
            keys.add(f.alias)
    return keys


def _err_text(e: PydanticValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"] if p != "arguments")
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def parse_tool_call(name: str, arguments: Union[str, Dict[str, Any], None]) -> Result:
    """Ok(call variant) or Err(validation) carrying a payload for the failure envelope."""
    if name not in CALL_SCHEMAS:
        return Err(ErrorKind.VALIDATION, f"Unknown tool: {name}", {"availableTools": sorted(CALL_SCHEMAS)})

    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as e:
            return Err(ErrorKind.VALIDATION, f"Arguments for {name} are not valid JSON: {e.msg}")
    arguments = arguments or {}
    if not isinstance(arguments, dict):
        return Err(ErrorKind.VALIDATION, f"Arguments for {name} must be a JSON object")

    unknown = sorted(set(arguments) - _known_keys(CALL_SCHEMAS[name]))
    if unknown:
        log.warning(f"{name}: ignoring unknown parameters {unknown}")

    try:
        return Ok(_CALL.validate_python({"name": name, "arguments": arguments}))
    except PydanticValidationError as e:
        return Err(ErrorKind.VALIDATION, f"Invalid parameters for {name}: {_err_text(e)}")
