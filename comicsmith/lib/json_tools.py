# comicsmith/lib/json_tools.py
import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_OPENERS = {"[": "]", "{": "}"}


def _loads(s: str) -> Optional[Any]:
    try:
        return json.loads(s)
    except (ValueError, TypeError):
        return None


def _balanced_end(s: str, start: int) -> int:
    """Index just past the bracket that closes s[start], honouring JSON strings; -1 if unbalanced."""
    stack = []
    in_str = False
    escaped = False
    for i in range(start, len(s)):
        ch = s[i]
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in "]}":
            if not stack or stack.pop() != ch:
                return -1
            if not stack:
                return i + 1
    return -1


def _from_fence(text: str) -> Optional[Any]:
    for block in _FENCE_RE.findall(text):
        value = _loads(block.strip())
        if isinstance(value, (list, dict)):
            return value
    return None


def _outermost(text: str) -> Optional[Any]:
    for i, ch in enumerate(text):
        if ch not in _OPENERS:
            continue
        end = _balanced_end(text, i)
        if end == -1:
            continue
        value = _loads(text[i:end])
        if isinstance(value, (list, dict)):
            return value
    return None


def extract_json(text: Optional[str]) -> Optional[Any]:
    """
    Pull a JSON array/object out of chatty model output. Tried in order:
    1) a ``` fenced block, 2) the first balanced [...] / {...} substring, 3) the whole trimmed text.
    Returns None when nothing parses.
    """
    if not text or not text.strip():
        return None
    s = text.strip()
    for strategy in (_from_fence, _outermost):
        value = strategy(s)
        if value is not None:
            return value
    return _loads(s)

