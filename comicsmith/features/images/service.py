# comicsmith/features/images/service.py
import random
from typing import Any, Dict, List, Optional

import requests

from comicsmith.agent.decision import simplify_prompt
from comicsmith.agent.session import ToolContext
from comicsmith.errors import ComicError, GenerationFailed, NotFoundError
from comicsmith.lib import pacing
from comicsmith.lib import leonardo_client
from comicsmith.lib.imaging import fetch_image_bytes_async
from comicsmith.lib.leonardo_client import ContextImage, GenerationRequest
from comicsmith.lib.refs import normalize_ref, panel_number, panel_ref
from comicsmith.logger import get_logger
from comicsmith.result import is_unrecoverable
from comicsmith.schemas import MAX_CONTEXT_REFS, Character, Comic, Panel

from .schemas import GenerateImagesParams

log = get_logger(__name__)

CHARACTER_SEED_BASE, CHARACTER_SEED_STEP = 17000, 17
PANEL_SEED_BASE, PANEL_SEED_STEP = 18000, 23
RETRY_SEED_OFFSET = 1000

CHARACTER_GAP_SECONDS = 2
PANEL_GAP_SECONDS = 8
PANEL_RETRY_WAIT_SECONDS = 5

CHARACTER_FOLDER = "comic/characters"
PANEL_FOLDER = "comic/panels"


def panel_seed(index: int, base: Optional[int] = None) -> int:
    return (PANEL_SEED_BASE if base is None else base) + index * PANEL_SEED_STEP


def character_seed(index: int, base: Optional[int] = None) -> int:
    return (CHARACTER_SEED_BASE if base is None else base) + index * CHARACTER_SEED_STEP


def known_context(comic: Comic) -> Dict[str, ContextImage]:
    """Context images already generated for this comic, keyed by reference (char_N / panel_N)."""
    out: Dict[str, ContextImage] = {}
    for c in comic.characters:
        if c.external_image_id:
            out[c.char_id] = ContextImage("GENERATED", c.external_image_id)
    for p in comic.panels:
        n = panel_number(p.panel_id)
        if n is not None and p.external_image_id:
            out[panel_ref(n)] = ContextImage("GENERATED", p.external_image_id)
    return out


def panel_context(
    panel: Panel,
    context_map: Dict[str, ContextImage],
    previous: Optional[ContextImage],
    limit: int,
) -> List[ContextImage]:
    """Previous panel first, then the panel's own refs in order, deduplicated and capped."""
    out: List[ContextImage] = []
    if previous is not None:
        out.append(previous)
    for raw in panel.context_image_refs:
        ref = normalize_ref(raw)
        image = context_map.get(ref) if ref else None
        if image is not None and image not in out:
            out.append(image)
    return out[: max(0, min(limit, MAX_CONTEXT_REFS))]


def _is_generation_error(e: Exception) -> bool:
    return isinstance(e, (ComicError, requests.RequestException))


def _raise_if_fatal(e: Exception) -> None:
    # bad credentials fail every later job the same way; a failed CDN download only loses its own image
    if isinstance(e, GenerationFailed) and is_unrecoverable(str(e)):
        raise e


async def _generate_and_store(
    ctx: ToolContext,
    *,
    prompt: str,
    width: int,
    height: int,
    seed: int,
    context: List[ContextImage],
    logical_id: str,
    folder: str,
    label: str,
) -> Dict[str, Any]:
    result = await leonardo_client.client.generate(
        GenerationRequest(prompt=prompt, width=width, height=height, seed=seed, context_images=context),
        label=label,
    )
    data = await fetch_image_bytes_async(result.image_url, uploader=ctx.uploader)
    asset = await ctx.uploader.upload_async(data, logical_id, folder)
    return {"url": asset.url, "externalImageId": result.external_image_id, "seed": seed}


async def generate_character_image(
    ctx: ToolContext, comic_id: str, character: Character, index: int, params: GenerateImagesParams
) -> Dict[str, Any]:
    seed = character_seed(index, params.seed)
    prompt = simplify_prompt(character.prompt) if params.simplify_prompts else character.prompt
    try:
        out = await _generate_and_store(
            ctx,
            prompt=prompt or character.description,
            width=character.image_width,
            height=character.image_height,
            seed=seed,
            context=[],
            logical_id=character.char_id,
            folder=CHARACTER_FOLDER,
            label=character.char_id,
        )
    except Exception as e:
        if not _is_generation_error(e):
            raise
        _raise_if_fatal(e)
        log.warning(f"{character.char_id}: image generation failed: {e}")
        return {"id": character.char_id, "error": str(e), "skipped": True}
    ctx.store.update_character_field(comic_id, character.char_id, "generated_image_url", out["url"])
    ctx.store.update_character_field(comic_id, character.char_id, "external_image_id", out["externalImageId"])
    return {"id": character.char_id, **out}


async def generate_panel_image(
    ctx: ToolContext,
    comic_id: str,
    panel: Panel,
    *,
    seed: int,
    context: List[ContextImage],
    previous: Optional[ContextImage],
    simplify: bool = False,
) -> Dict[str, Any]:
    """
    One panel with one in-place retry: after a short wait, a shifted seed and only the
    previous panel as context. Failures come back as {"id", "error", "skipped"}.
    """
    prompt = simplify_prompt(panel.prompt) if simplify else panel.prompt
    kwargs = dict(
        prompt=prompt or panel.description,
        width=panel.image_width,
        height=panel.image_height,
        logical_id=panel.panel_id,
        folder=PANEL_FOLDER,
        label=panel.panel_id,
    )
    retried = False
    try:
        out = await _generate_and_store(ctx, seed=seed, context=context, **kwargs)
    except Exception as e:
        if not _is_generation_error(e):
            raise
        _raise_if_fatal(e)
        log.warning(f"{panel.panel_id}: generation failed ({e}), retrying with a new seed")
        await pacing.pause(PANEL_RETRY_WAIT_SECONDS)
        retry_context = [previous] if previous is not None and context else []
        try:
            out = await _generate_and_store(ctx, seed=seed + RETRY_SEED_OFFSET, context=retry_context, **kwargs)
        except Exception as e2:
            if not _is_generation_error(e2):
                raise
            _raise_if_fatal(e2)
            log.error(f"{panel.panel_id}: retry failed: {e2}")
            return {"id": panel.panel_id, "error": str(e2), "skipped": True}
        retried = True

    ctx.store.update_panel_field(comic_id, panel.panel_id, "generated_image_url", out["url"])
    ctx.store.update_panel_field(comic_id, panel.panel_id, "external_image_id", out["externalImageId"])
    return {"id": panel.panel_id, **out, "contextImages": len(context), "retried": retried}


def previous_panel_context(comic: Comic, panel: Panel) -> Optional[ContextImage]:
    idx = comic.panels.index(panel)
    if idx == 0:
        return None
    prev = comic.panels[idx - 1]
    return ContextImage("GENERATED", prev.external_image_id) if prev.external_image_id else None


async def regenerate_panel(
    ctx: ToolContext, comic_id: str, panel_id: str, *, context_limit: int = MAX_CONTEXT_REFS, simplify: bool = False
) -> Dict[str, Any]:
    """Single panel with a fresh randomized seed, reusing persisted images of earlier panels for continuity."""
    comic = ctx.store.get_comic(comic_id)
    panel = comic.panel(panel_id)
    if panel is None:
        raise NotFoundError(
            f"panel {panel_id} not found",
            details={"availablePanels": [p.panel_id for p in comic.panels]},
        )
    idx = comic.panels.index(panel)
    previous = previous_panel_context(comic, panel)
    context = panel_context(panel, known_context(comic), previous, context_limit)
    seed = panel_seed(idx) + random.randint(0, 99)
    return await generate_panel_image(
        ctx, comic_id, panel, seed=seed, context=context, previous=previous, simplify=simplify
    )


def source_map(comic: Comic) -> Dict[str, str]:
    out = {c.char_id: c.generated_image_url for c in comic.characters if c.generated_image_url}
    out.update({p.panel_id: p.generated_image_url for p in comic.panels if p.generated_image_url})
    return out


async def generate_images(params: GenerateImagesParams, ctx: ToolContext) -> Dict[str, Any]:
    comic_id = ctx.require_comic_id()
    comic = ctx.store.get_comic(comic_id)
    limit = MAX_CONTEXT_REFS if params.context_limit is None else params.context_limit
    results: Dict[str, List[Dict[str, Any]]] = {"characters": [], "panels": []}

    if params.specific_panel:
        results["panels"].append(await regenerate_panel(
            ctx, comic_id, params.specific_panel.strip(), context_limit=limit, simplify=params.simplify_prompts
        ))
    else:
        if params.generate_type in ("characters", "both"):
            if not comic.characters:
                raise NotFoundError("No characters found. Please generate characters first.")
            ctx.store.update_comic(comic_id, status="generating")
            for i, character in enumerate(comic.characters):
                if i:
                    await pacing.pause(CHARACTER_GAP_SECONDS)
                results["characters"].append(await generate_character_image(ctx, comic_id, character, i, params))

        if params.generate_type in ("panels", "both"):
            if not comic.panels:
                raise NotFoundError("No panels found. Please generate panels first.")
            ctx.store.update_comic(comic_id, status="generating")
            # characters generated above must be visible as context
            context_map = known_context(ctx.store.get_comic(comic_id))
            previous: Optional[ContextImage] = None
            for i, panel in enumerate(comic.panels):
                context = panel_context(panel, context_map, previous, limit)
                seed = panel_seed(i, params.seed)
                log.info(f"{panel.panel_id} ({i + 1}/{len(comic.panels)}): {len(context)} context images")
                res = await generate_panel_image(
                    ctx, comic_id, panel,
                    seed=seed, context=context, previous=previous, simplify=params.simplify_prompts,
                )
                results["panels"].append(res)
                if res.get("error"):
                    continue
                image = ContextImage("GENERATED", res["externalImageId"])
                context_map[panel_ref(i + 1)] = image
                previous = image
                if i < len(comic.panels) - 1:
                    await pacing.pause(PANEL_GAP_SECONDS)

    comic = ctx.store.get_comic(comic_id)
    panels_ok = [r for r in results["panels"] if not r.get("error")]
    chars_ok = [r for r in results["characters"] if not r.get("error")]
    return {
        "success": True,
        "comicId": comic_id,
        "generateType": "panels" if params.specific_panel else params.generate_type,
        "results": results,
        "sourceMap": source_map(comic),
        "summary": {
            "totalCharacters": len(results["characters"]),
            "successfulCharacters": len(chars_ok),
            "totalPanels": len(results["panels"]),
            "successfulPanels": len(panels_ok),
            "failedPanels": [r["id"] for r in results["panels"] if r.get("error")],
        },
    }
