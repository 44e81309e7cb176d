# comicsmith/result.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNRECOVERABLE = "unrecoverable"
    TRANSIENT = "transient"
    TIMEOUT = "timeout"
    PARSE = "parse"
    PARTIAL = "partial"
    NOT_FOUND = "not_found"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.TRANSIENT, ErrorKind.TIMEOUT, ErrorKind.PARSE, ErrorKind.PARTIAL)


@dataclass(frozen=True)
class Ok:
    value: Any = None


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)


Result = Union[Ok, Err]


UNRECOVERABLE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"api key", r"authentication", r"unauthorized", r"not found", r"invalid model", r"quota exceeded")
]
TIMEOUT_RE = re.compile(r"time(d)?\s*out", re.IGNORECASE)


def is_unrecoverable(text: str) -> bool:
    return any(p.search(text or "") for p in UNRECOVERABLE_PATTERNS)


def classify_error(text: str) -> ErrorKind:
    if is_unrecoverable(text):
        return ErrorKind.UNRECOVERABLE
    if TIMEOUT_RE.search(text or ""):
        return ErrorKind.TIMEOUT
    return ErrorKind.TRANSIENT


def kind_of(value: Any, default: ErrorKind = ErrorKind.TRANSIENT) -> ErrorKind:
    try:
        return ErrorKind(value)
    except ValueError:
        return default
