# comicsmith/features/characters/service.py
from typing import Any, Dict, List

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from comicsmith.agent.session import ToolContext
from comicsmith.errors import NotFoundError, ParseError
from comicsmith.lib import openai_client
from comicsmith.lib.json_tools import extract_json
from comicsmith.lib.refs import char_id
from comicsmith.logger import get_logger
from comicsmith.schemas import Character

from .prompt import SYSTEM, build_characters_prompt
from .schemas import DraftCharacter, GenerateCharactersParams

log = get_logger(__name__)

CHARACTER_STYLE = "full body pose, center, white background, comic book style"
CHARACTER_WIDTH, CHARACTER_HEIGHT = 832, 1248

_DRAFTS = TypeAdapter(List[DraftCharacter])


def parse_drafts(raw: str) -> List[DraftCharacter]:
    data = extract_json(raw)
    if isinstance(data, dict):
        data = data.get("characters")
    if not isinstance(data, list) or not data:
        raise ParseError("Failed to generate valid character descriptions", raw=raw)
    try:
        return _DRAFTS.validate_python(data)
    except PydanticValidationError as e:
        raise ParseError("Failed to generate valid character descriptions", raw=raw, details={"errors": e.error_count()}) from e


async def generate_characters(params: GenerateCharactersParams, ctx: ToolContext) -> Dict[str, Any]:
    comic_id = ctx.require_comic_id()
    comic = ctx.store.get_comic(comic_id)
    if not comic.panels:
        raise NotFoundError("No panels found. Please generate panels first before generating characters.")

    raw = await openai_client.complete_text(
        build_characters_prompt(
            story_context=comic.story_context,
            count=params.count,
            panel_descriptions=[p.description for p in comic.panels],
        ),
        system=SYSTEM,
        temperature=0.7 if params.temperature is None else params.temperature,
        seed=params.seed,
    )
    drafts = parse_drafts(raw)
    if len(drafts) < params.count:
        raise ParseError(
            f"Failed to generate valid character descriptions: expected {params.count}, got {len(drafts)}",
            raw=raw,
        )

    # ids are positional so panel refs (char_1, char_2) always resolve
    characters = [
        Character(
            char_id=char_id(i),
            display_name=d.name.strip(),
            description=d.description.strip(),
            image_width=CHARACTER_WIDTH,
            image_height=CHARACTER_HEIGHT,
            prompt=f"{d.description.strip()}, {CHARACTER_STYLE}",
        )
        for i, d in enumerate(drafts[: params.count], start=1)
    ]
    ctx.store.replace_characters(comic_id, characters)
    log.info(f"comic {comic_id}: {len(characters)} characters")

    return {
        "success": True,
        "comicId": comic_id,
        "characterCount": len(characters),
        "characters": [
            c.model_dump(by_alias=True, include={"char_id", "display_name", "description", "prompt"})
            for c in characters
        ],
        "message": f"Generated {len(characters)} characters. Next: generate dialogue.",
    }
