# comicsmith/features/panels/tool.py
from comicsmith.agent.tool import Tool

from .schemas import GeneratePanelsParams
from .service import generate_panels


class GeneratePanelsTool(Tool):
    name = "generate_panels"
    description = (
        "Turn a story into panel descriptions laid out over pages. Always the first step; "
        "starts a new comic. panel1 is the cover."
    )
    schema = GeneratePanelsParams

    async def run(self, params: GeneratePanelsParams, ctx):
        return await generate_panels(params, ctx)
