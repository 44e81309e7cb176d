# comicsmith/features/dialogue/tool.py
from comicsmith.agent.tool import Tool

from .schemas import GenerateDialogueParams
from .service import generate_dialogue


class GenerateDialogueTool(Tool):
    name = "generate_dialogue"
    description = (
        "Write the cover title plus per-panel dialogue, narration and sound effects. "
        "Needs panels and characters."
    )
    schema = GenerateDialogueParams

    async def run(self, params: GenerateDialogueParams, ctx):
        return await generate_dialogue(params, ctx)
