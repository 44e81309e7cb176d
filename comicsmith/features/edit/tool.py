# comicsmith/features/edit/tool.py
from comicsmith.agent.tool import Tool

from .schemas import EditPanelParams
from .service import edit_panel


class EditPanelTool(Tool):
    name = "edit_panel"
    description = (
        "Change one field of a panel or character, e.g. a panel's description, dialogue or narration, "
        "or a character's description."
    )
    schema = EditPanelParams

    async def run(self, params: EditPanelParams, ctx):
        return await edit_panel(params, ctx)
