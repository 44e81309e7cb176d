# comicsmith/errors.py
from typing import Any, Dict, Optional


class ComicError(Exception):
    """Base class for pipeline errors. `kind` matches comicsmith.result.ErrorKind values."""

    kind = "transient"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(ComicError):
    kind = "not_found"


class ValidationError(ComicError):
    kind = "validation"


class GenerationFailed(ComicError):
    kind = "transient"


class GenerationTimeout(ComicError):
    kind = "timeout"


class ParseError(ComicError):
    """Model output could not be turned into the JSON shape a tool needs."""

    kind = "parse"

    def __init__(self, message: str, *, raw: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.raw = raw


class ConfigurationError(ComicError):
    kind = "unrecoverable"
