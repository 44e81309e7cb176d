# comicsmith/features/characters/tool.py
from comicsmith.agent.tool import Tool

from .schemas import GenerateCharactersParams
from .service import generate_characters


class GenerateCharactersTool(Tool):
    name = "generate_characters"
    description = "Design the main characters (char_1, char_2, ...) from the story and its panels. Needs panels."
    schema = GenerateCharactersParams

    async def run(self, params: GenerateCharactersParams, ctx):
        return await generate_characters(params, ctx)
