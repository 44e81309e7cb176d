# comicsmith/agent/tool.py
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel

from comicsmith.agent.session import ToolContext
from comicsmith.errors import ComicError, ParseError
from comicsmith.logger import get_logger
from comicsmith.result import classify_error

log = get_logger(__name__)

RAW_RESPONSE_LIMIT = 500


def dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False)


def fail(error: str, kind: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "error": error, "kind": kind or classify_error(error).value, **extra}


class Tool(ABC):
    """
    One pipeline stage. Subclasses set name/description/schema and implement `run`,
    which returns a payload dict or raises; `execute` turns either into the canonical JSON string.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    schema: ClassVar[Type[BaseModel]]
    timeout_seconds: ClassVar[Optional[float]] = None

    @property
    def required_params(self) -> List[str]:
        return [f.alias or n for n, f in self.schema.model_fields.items() if f.is_required()]

    @property
    def optional_params(self) -> List[str]:
        return [f.alias or n for n, f in self.schema.model_fields.items() if not f.is_required()]

    def to_param(self) -> Dict[str, Any]:
        """OpenAI function-calling definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.schema.model_json_schema(by_alias=True),
            },
        }

    @abstractmethod
    async def run(self, params: BaseModel, ctx: ToolContext) -> Dict[str, Any]:
        ...

    async def execute(self, params: BaseModel, ctx: ToolContext) -> str:
        try:
            payload = await self.run(params, ctx)
        except ParseError as e:
            log.warning(f"{self.name}: {e.message}")
            payload = fail(e.message, e.kind, rawResponse=e.raw[:RAW_RESPONSE_LIMIT], **e.details)
        except ComicError as e:
            log.warning(f"{self.name}: {e.message}")
            kind = classify_error(e.message).value if e.kind == "transient" else e.kind
            payload = fail(e.message, kind, **e.details)
        except Exception as e:
            log.exception(f"{self.name} failed")
            payload = fail(str(e) or type(e).__name__)
        return dumps(payload)
