# comicsmith/agent/controller.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from comicsmith.agent.decision import DecisionEngine
from comicsmith.agent.memory import Memory
from comicsmith.agent.prompt import SYSTEM_PROMPT
from comicsmith.agent.registry import Registry
from comicsmith.agent.session import SessionState, ToolContext
from comicsmith.config import config
from comicsmith.features.bubbles.tool import RenderBubblesTool
from comicsmith.features.characters.tool import GenerateCharactersTool
from comicsmith.features.dialogue.tool import GenerateDialogueTool
from comicsmith.features.edit.tool import EditPanelTool
from comicsmith.features.images.tool import GenerateImagesTool
from comicsmith.features.layout.tool import SelectLayoutTool
from comicsmith.features.pages.tool import ComposePagesTool
from comicsmith.features.panels.tool import GeneratePanelsTool
from comicsmith.features.placement.tool import PlaceDialogueTool
from comicsmith.features.regenerate.tool import RegeneratePanelsTool
from comicsmith.lib import openai_client
from comicsmith.lib.store import ComicStore
from comicsmith.lib.uploader import AssetUploader, get_uploader
from comicsmith.logger import get_logger

log = get_logger(__name__)

# tools that take a sourceMap and fall back to the one from the last image generation
SOURCE_MAP_TOOLS = {"place_dialogue_with_vision", "render_dialogue_on_panels", "compose_pages"}
FALLBACK_REPLY = "Done."


def default_tools():
    return [
        SelectLayoutTool(),
        GeneratePanelsTool(),
        GenerateCharactersTool(),
        GenerateDialogueTool(),
        GenerateImagesTool(),
        PlaceDialogueTool(),
        RenderBubblesTool(),
        ComposePagesTool(),
        EditPanelTool(),
        RegeneratePanelsTool(),
    ]


def outcome_note(tool: str, payload: Dict[str, Any]) -> Optional[str]:
    """Plain-text line appended to the reply for failures and partial successes."""
    if not payload.get("success", False):
        note = f"{tool} failed: {payload.get('error', 'unknown error')}"
        if payload.get("reason"):
            note += f" ({payload['reason']})"
        alt = payload.get("alternative") or {}
        hint = alt.get("strategy") or alt.get("suggestion") or alt.get("reason")
        if hint:
            note += f". Suggested next step: {hint}"
        return note
    if payload.get("failedPanels"):
        ok = ", ".join(payload.get("successfulPanels") or []) or "none"
        bad = ", ".join(payload["failedPanels"])
        return f"{tool}: generated {ok}; still failing: {bad}"
    return None


def _assistant_message(msg) -> Dict[str, Any]:
    return {
        "role": "assistant",
        "content": msg.content or "",
        "tool_calls": [
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.function.name, "arguments": tc.function.arguments or "{}"},
            }
            for tc in msg.tool_calls
        ],
    }


class ComicAgent:
    """
    One conversational turn: ask the model, run the tool calls it asks for in order,
    feed the results back and return the model's final words.
    """

    def __init__(
        self,
        registry: Registry,
        *,
        store: ComicStore,
        uploader: AssetUploader,
        memory: Memory,
        history_limit: Optional[int] = None,
    ):
        self.registry = registry
        self.store = store
        self.uploader = uploader
        self.memory = memory
        self.history_limit = history_limit or config.history_limit

    def new_session(self) -> SessionState:
        return SessionState()

    def context(self, session: SessionState) -> ToolContext:
        return ToolContext(store=self.store, uploader=self.uploader, memory=self.memory, session=session)

    def _with_source_map(self, name: str, arguments: str, session: SessionState) -> str:
        if name not in SOURCE_MAP_TOOLS:
            return arguments
        try:
            args = json.loads(arguments or "{}")
        except json.JSONDecodeError:
            return arguments
        if not isinstance(args, dict) or args.get("sourceMap"):
            return arguments
        text_images = args.get("useTextImages", True) is not False
        source_map = session.last_source_map(text_images=text_images and name == "compose_pages")
        if not source_map:
            return arguments
        log.debug(f"{name}: using sourceMap from the last image generation")
        return json.dumps({**args, "sourceMap": source_map})

    def _absorb(self, name: str, payload: Dict[str, Any], session: SessionState) -> None:
        if not payload.get("success"):
            return
        if payload.get("comicId"):
            session.comic_id = payload["comicId"]
        if name == "generate_panels":
            # new comic: earlier images belong to the previous one
            session.last_image_gen = None
            session.rendered_map.clear()
        elif name == "generate_leonardo_images":
            session.last_image_gen = payload
            fresh = [p for p in (payload.get("results") or {}).get("panels") or [] if p.get("url")]
            for p in fresh:
                session.rendered_map.pop(p["id"], None)
            session.panel_urls = [p["url"] for p in fresh]
        elif name == "regenerate_failed_panels":
            fresh = [p for p in payload.get("results") or [] if p.get("url")]
            for p in fresh:
                session.rendered_map.pop(p["id"], None)
            session.panel_urls = [p["url"] for p in fresh]
        elif name == "render_dialogue_on_panels":
            session.rendered_map.update(payload.get("sourceMap") or {})
        elif name == "compose_pages":
            session.page_urls = [p["url"] for p in payload.get("pages") or []]

    async def respond(self, message: str, session: SessionState) -> str:
        session.clear_turn_outputs()
        ctx = self.context(session)
        messages: List[Dict[str, Any]] = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(session.history[-self.history_limit:])
        messages.append({"role": "user", "content": message})

        reply_msg = await openai_client.chat(messages, tools=self.registry.tool_params())
        notes: List[str] = []
        if reply_msg.tool_calls:
            messages.append(_assistant_message(reply_msg))
            for tc in reply_msg.tool_calls:
                name = tc.function.name
                arguments = self._with_source_map(name, tc.function.arguments or "{}", session)
                log.info(f"tool call: {name}")
                result = await self.registry.invoke_raw(name, arguments, ctx)
                payload = json.loads(result)
                self._absorb(name, payload, session)
                note = outcome_note(name, payload)
                if note:
                    notes.append(note)
                messages.append({"role": "tool", "tool_call_id": tc.id, "content": result})
            reply_msg = await openai_client.chat(messages)

        reply = (reply_msg.content or "").strip() or FALLBACK_REPLY
        if notes:
            reply = reply + "\n\n" + "\n".join(notes)
        session.remember_turn(message, reply, self.history_limit)
        return reply


def build_agent(
    *,
    store: Optional[ComicStore] = None,
    uploader: Optional[AssetUploader] = None,
    memory: Optional[Memory] = None,
) -> ComicAgent:
    # fails here, inside the callers' startup guard, when credentials are missing
    openai_client.get_client()
    memory = memory or Memory()
    registry = Registry(default_tools(), memory, DecisionEngine(memory))
    agent = ComicAgent(
        registry,
        store=store or ComicStore(),
        uploader=uploader or get_uploader(),
        memory=memory,
    )
    log.info(f"agent ready with {len(registry.tools)} tools")
    return agent
