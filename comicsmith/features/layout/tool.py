# comicsmith/features/layout/tool.py
from comicsmith.agent.tool import Tool

from .schemas import SelectLayoutParams
from .service import select_layout


class SelectLayoutTool(Tool):
    name = "select_comic_layout"
    description = (
        "Pick the page layout for a comic of the given page count. "
        "Returns how many panels to generate and how they are spread over pages."
    )
    schema = SelectLayoutParams

    async def run(self, params: SelectLayoutParams, ctx):
        return select_layout(params.page_count)
