# comicsmith/features/layout/service.py
from typing import Any, Dict

from comicsmith.lib.layouts import layout_for_page_count
from comicsmith.logger import get_logger

log = get_logger(__name__)


def select_layout(page_count: int) -> Dict[str, Any]:
    layout = layout_for_page_count(page_count)
    out: Dict[str, Any] = {
        "success": True,
        "layoutName": layout.name,
        "pageCount": layout.page_count,
        "panelsPerPage": layout.panels_per_page,
        "totalPanels": layout.total_panels,
        "message": f"Using {layout.name}: {layout.total_panels} panels over {layout.page_count} pages",
    }
    if layout.page_count != page_count:
        log.info(f"no {page_count}-page template, falling back to {layout.name}")
        out["requestedPageCount"] = page_count
    return out
