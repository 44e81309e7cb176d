# comicsmith/features/images/tool.py
from comicsmith.agent.tool import Tool

from .schemas import GenerateImagesParams
from .service import generate_images


class GenerateImagesTool(Tool):
    name = "generate_leonardo_images"
    description = (
        "Render character sheets and/or panel images with Leonardo, one job at a time, "
        "feeding earlier images back as context for consistency. "
        "Use specificPanel to regenerate a single panel."
    )
    schema = GenerateImagesParams

    async def run(self, params: GenerateImagesParams, ctx):
        return await generate_images(params, ctx)
