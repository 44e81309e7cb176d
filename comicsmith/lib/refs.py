# comicsmith/lib/refs.py
"""
Context image references. Panels are identified as "panelN" but referenced as "panel_N";
characters are "char_N" in both roles.
"""
import re
from typing import Optional

_PANEL_RE = re.compile(r"^panel[_\s-]?(\d+)$", re.IGNORECASE)
_CHAR_RE = re.compile(r"^char(?:acter)?[_\s-]?(\d+)$", re.IGNORECASE)


def panel_ref(n: int) -> str:
    return f"panel_{n}"


def panel_id(n: int) -> str:
    return f"panel{n}"


def char_id(n: int) -> str:
    return f"char_{n}"


def panel_number(value: str) -> Optional[int]:
    """3 for 'panel3', 'panel_3' or 'Panel 3'."""
    m = _PANEL_RE.match((value or "").strip())
    return int(m.group(1)) if m else None


def normalize_ref(value: str) -> Optional[str]:
    """Canonical 'panel_N' / 'char_N', or None when the value is neither."""
    value = (value or "").strip()
    m = _PANEL_RE.match(value)
    if m:
        return panel_ref(int(m.group(1)))
    m = _CHAR_RE.match(value)
    if m:
        return char_id(int(m.group(1)))
    return None
