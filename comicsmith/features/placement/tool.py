# comicsmith/features/placement/tool.py
from comicsmith.agent.tool import Tool

from .schemas import PlaceDialogueParams
from .service import place_dialogue


class PlaceDialogueTool(Tool):
    name = "place_dialogue_with_vision"
    description = (
        "Look at each generated panel image and decide where its title, narration and speech bubbles go. "
        "Run after images, before rendering bubbles."
    )
    schema = PlaceDialogueParams

    async def run(self, params: PlaceDialogueParams, ctx):
        return await place_dialogue(params, ctx)
