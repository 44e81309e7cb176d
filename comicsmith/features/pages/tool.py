# comicsmith/features/pages/tool.py
from comicsmith.agent.tool import Tool

from .schemas import ComposePagesParams
from .service import compose_pages


class ComposePagesTool(Tool):
    name = "compose_pages"
    description = (
        "Lay the finished panels out onto A4 comic pages and upload them. "
        "Uses panels with rendered text when available. Final step."
    )
    schema = ComposePagesParams

    async def run(self, params: ComposePagesParams, ctx):
        return await compose_pages(params, ctx)
