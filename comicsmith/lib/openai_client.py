# comicsmith/lib/openai_client.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from openai import OpenAI
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from comicsmith.config import config
from comicsmith.errors import ConfigurationError
from comicsmith.lib.imaging import to_data_url
from comicsmith.lib.json_tools import extract_json
from comicsmith.logger import get_logger

log = get_logger(__name__)

_client: Optional[OpenAI] = None


def get_client() -> OpenAI:
    """Shared client, built on first use so a missing key fails at startup rather than at import."""
    global _client
    if _client is None:
        if not config.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        _client = OpenAI(api_key=config.openai_api_key)
    return _client


def _create(**kwargs):
    return get_client().chat.completions.create(**kwargs)


async def complete_text(
    prompt: str,
    *,
    system: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: Optional[int] = None,
    seed: Optional[int] = None,
    model: Optional[str] = None,
) -> str:
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    extra: Dict[str, Any] = {}
    if max_tokens:
        extra["max_tokens"] = max_tokens
    if seed is not None:
        extra["seed"] = seed
    resp = await asyncio.to_thread(
        _create,
        model=model or config.openai_text_model,
        temperature=temperature,
        messages=messages,
        **extra,
    )
    return (resp.choices[0].message.content or "").strip()


def parse_json(raw: str, schema: Any = None) -> Optional[Any]:
    """extract_json plus optional validation against a pydantic type; None when either step fails."""
    value = extract_json(raw)
    if value is None or schema is None:
        return value
    try:
        return TypeAdapter(schema).validate_python(value)
    except PydanticValidationError as e:
        log.warning(f"model JSON did not match {getattr(schema, '__name__', schema)}: {e.error_count()} errors")
        return None


async def complete_json(prompt: str, schema: Any = None, **kwargs) -> Optional[Any]:
    raw = await complete_text(prompt, **kwargs)
    return parse_json(raw, schema)


async def complete_vision(
    prompt: str,
    image: bytes,
    *,
    mime: Optional[str] = None,
    system: Optional[str] = None,
    temperature: float = 0.2,
) -> str:
    messages: List[Dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({
        "role": "user",
        "content": [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": to_data_url(image, mime)}},
        ],
    })
    resp = await asyncio.to_thread(
        _create,
        model=config.openai_vision_model,
        temperature=temperature,
        messages=messages,
    )
    return (resp.choices[0].message.content or "").strip()


async def chat(messages: List[Dict[str, Any]], *, tools: Optional[List[Dict[str, Any]]] = None, temperature: float = 0.7):
    """One chat turn; returns the assistant message object (content and optional tool_calls)."""
    extra: Dict[str, Any] = {}
    if tools:
        extra["tools"] = tools
        extra["tool_choice"] = "auto"
    resp = await asyncio.to_thread(
        _create,
        model=config.openai_text_model,
        temperature=temperature,
        messages=messages,
        **extra,
    )
    return resp.choices[0].message
