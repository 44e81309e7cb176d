# comicsmith/features/regenerate/service.py
from typing import Any, Dict, List

from comicsmith.agent.session import ToolContext
from comicsmith.errors import ValidationError
from comicsmith.features.images.service import regenerate_panel
from comicsmith.lib import pacing
from comicsmith.lib.refs import panel_id, panel_number
from comicsmith.logger import get_logger

from .schemas import RegeneratePanelsParams

log = get_logger(__name__)

GAP_SECONDS = 5


def _canonical(pid: str) -> str:
    n = panel_number(pid)
    return pid if n is None else panel_id(n)


async def regenerate_failed_panels(params: RegeneratePanelsParams, ctx: ToolContext) -> Dict[str, Any]:
    comic_id = ctx.require_comic_id()
    comic = ctx.store.get_comic(comic_id)
    known = {p.panel_id for p in comic.panels}

    requested = [_canonical(pid) for pid in params.ids()]
    unknown = [pid for pid in requested if pid not in known]
    targets = [pid for pid in requested if pid in known]
    if not targets:
        raise ValidationError(
            f"None of the requested panels exist: {', '.join(unknown)}",
            details={"availablePanels": sorted(known, key=panel_number)},
        )

    results: List[Dict[str, Any]] = []
    for i, pid in enumerate(targets):
        if i:
            await pacing.pause(GAP_SECONDS)
        results.append(await regenerate_panel(ctx, comic_id, pid))

    ok = [r["id"] for r in results if not r.get("error")]
    failed = [r["id"] for r in results if r.get("error")]
    log.info(f"comic {comic_id}: regenerated {len(ok)}/{len(targets)} panels")
    return {
        "success": bool(ok),
        "comicId": comic_id,
        "results": results,
        "unknownPanels": unknown,
        "summary": {"requested": len(requested), "regenerated": ok, "failed": failed},
        **({} if ok else {"error": f"Regeneration failed for {', '.join(failed)}"}),
    }
