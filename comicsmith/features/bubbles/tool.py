# comicsmith/features/bubbles/tool.py
from comicsmith.agent.tool import Tool

from .schemas import RenderBubblesParams
from .service import render_bubbles


class RenderBubblesTool(Tool):
    name = "render_dialogue_on_panels"
    description = (
        "Draw the placed title, narration boxes and speech bubbles onto the panel images. "
        "Run after place_dialogue_with_vision."
    )
    schema = RenderBubblesParams

    async def run(self, params: RenderBubblesParams, ctx):
        return await render_bubbles(params, ctx)
