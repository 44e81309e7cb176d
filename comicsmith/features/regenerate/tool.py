# comicsmith/features/regenerate/tool.py
from comicsmith.agent.tool import Tool

from .schemas import RegeneratePanelsParams
from .service import regenerate_failed_panels


class RegeneratePanelsTool(Tool):
    name = "regenerate_failed_panels"
    description = "Regenerate the images of the listed panels one by one with fresh seeds."
    schema = RegeneratePanelsParams

    async def run(self, params: RegeneratePanelsParams, ctx):
        return await regenerate_failed_panels(params, ctx)
