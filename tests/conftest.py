# tests/conftest.py
import dataclasses
import io
import json
import os
import re
import tempfile
import types

# keep the import-time data/outputs folders out of the repo
_TMP = tempfile.mkdtemp(prefix="comicsmith-tests-")
os.environ.setdefault("DATA_DIR", os.path.join(_TMP, "data"))
os.environ.setdefault("OUTPUTS_DIR", os.path.join(_TMP, "outputs"))
os.environ.setdefault("PROMPT_LOG", "false")

import pytest
from PIL import Image

from comicsmith.agent.memory import Memory
from comicsmith.agent.session import SessionState, ToolContext
from comicsmith.errors import GenerationFailed
from comicsmith.lib import leonardo_client, openai_client, pacing
from comicsmith.lib.imaging import to_data_url
from comicsmith.lib.leonardo_client import PollResult
from comicsmith.lib.store import ComicStore
from comicsmith.lib.uploader import LocalUploader

BASE_URL = "http://testserver"
_REAL_GET_CLIENT = openai_client.get_client


# -------- Utilities --------
def tiny_png(width: int = 48, height: int = 72, color=(90, 140, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def panels_payload(n: int):
    out = []
    for i in range(1, n + 1):
        refs = ["char_1", "char_2"] if i == 1 else [f"panel_{i - 1}", "char_1"]
        out.append({
            "panelId": f"panel{i}",
            "description": f"Scene {i}: a red fox and a grey owl cross the moonlit forest",
            "cameraAngle": "medium-shot",
            "contextImageRefs": refs,
        })
    return out


def characters_payload(n: int):
    cast = [
        ("Fox", "A lean red fox in a green scarf with amber eyes"),
        ("Owl", "A round grey owl with brass spectacles and a satchel"),
        ("Badger", "A stocky badger in a miner's helmet"),
    ]
    return [{"id": f"char_{i + 1}", "name": name, "description": desc} for i, (name, desc) in enumerate(cast[:n])]


def dialogue_payload(panel_ids):
    out = []
    for pid in panel_ids:
        n = int(pid[len("panel"):])
        if n == 1:
            # the cover must end up with a title and no dialogue, whatever the model says
            out.append({"panelId": pid, "title": "The Night Forest", "dialogue": [{"speaker": "Fox", "text": "Hi!"}]})
        elif n % 2 == 0:
            out.append({
                "panelId": pid,
                "dialogue": [
                    {"speaker": "Fox", "text": f"Line one of panel {n}"},
                    {"speaker": "owl", "text": f"Line two of panel {n}", "type": "whisper"},
                    {"speaker": "Fox", "text": "A third line that must be dropped"},
                ],
                "narration": "Narration that loses to dialogue",
                "soundEffects": ["WHOOSH"],
            })
        else:
            out.append({"panelId": pid, "dialogue": [], "narration": f"Meanwhile, in panel {n}."})
    return out


def placement_payload(prompt: str):
    placements = []
    for i, m in enumerate(re.finditer(r'^\* (NARRATION|SPEECH by ([^:]+)): "(.*)"$', prompt, re.MULTILINE)):
        if m.group(1) == "NARRATION":
            placements.append({"type": "narration", "text": m.group(3), "position": {"x": 5, "y": 5},
                               "tail": {"x": 1, "y": 1}, "readingOrder": i + 1})
        else:
            placements.append({"type": "speech", "text": m.group(3), "speaker": m.group(2),
                               "position": {"x": -40, "y": 5000}, "tail": {"x": 20, "y": 30},
                               "readingOrder": i + 1})
    return {"placements": placements}


# -------- Mocks for OpenAI --------
class _MockFunction:
    def __init__(self, name: str, arguments: str):
        self.name = name
        self.arguments = arguments


class _MockToolCall:
    def __init__(self, call_id: str, name: str, arguments):
        self.id = call_id
        self.type = "function"
        self.function = _MockFunction(name, arguments if isinstance(arguments, str) else json.dumps(arguments))


class _MockMessage:
    def __init__(self, content, tool_calls=None):
        self.content = content
        self.tool_calls = tool_calls


class _MockChoice:
    def __init__(self, content, tool_calls=None):
        self.message = _MockMessage(content, tool_calls)


class _MockChatResponse:
    def __init__(self, content, tool_calls=None):
        self.choices = [_MockChoice(content, tool_calls)]


def tool_calls_reply(*calls):
    """Agent-level reply asking for tools: tool_calls_reply(("generate_panels", {...}), ...)."""
    return _MockChatResponse(None, [_MockToolCall(f"call_{i}", name, args) for i, (name, args) in enumerate(calls)])


def _text_of(content) -> str:
    if isinstance(content, list):
        return "\n".join(part.get("text", "") for part in content if part.get("type") == "text")
    return content or ""


def _route(system: str) -> str:
    if "You are Comicsmith" in system:
        return "agent"
    if "storyboard artist" in system:
        return "panels"
    if "character designer" in system:
        return "characters"
    if "dialogue writer" in system:
        return "dialogue"
    if "where text goes" in system:
        return "placement"
    return "other"


@pytest.fixture(autouse=True)
def mock_openai(monkeypatch):
    """
    Auto-mock the OpenAI client so tests don't hit the network.
    Routes by system prompt; tests can queue raw replies per route in `overrides`
    and agent-level replies in `agent_replies`.
    """
    llm = types.SimpleNamespace(overrides={}, agent_replies=[], calls=[])

    def _fake_chat_create(model, temperature, messages, **kwargs):
        system = messages[0]["content"] if messages[0]["role"] == "system" else ""
        user = _text_of(messages[-1]["content"])
        route = _route(system)
        llm.calls.append((route, messages, kwargs))

        queued = llm.overrides.get(route)
        if queued:
            item = queued.pop(0)
            if isinstance(item, Exception):
                raise item
            return _MockChatResponse(item)

        if route == "panels":
            n = int(re.search(r"exactly (\d+) comic panels", user).group(1))
            return _MockChatResponse(json.dumps(panels_payload(n)))
        if route == "characters":
            n = int(re.search(r"Design exactly (\d+)", user).group(1))
            return _MockChatResponse("```json\n" + json.dumps(characters_payload(n)) + "\n```")
        if route == "dialogue":
            ids = re.findall(r"^\* (panel\d+):", user, re.MULTILINE)
            return _MockChatResponse("Here you go:\n" + json.dumps(dialogue_payload(ids)))
        if route == "placement":
            return _MockChatResponse(json.dumps(placement_payload(user)))
        if route == "agent":
            if llm.agent_replies:
                return llm.agent_replies.pop(0)
            return _MockChatResponse("All done.")
        return _MockChatResponse(json.dumps({"ok": True}))

    fake_client = types.SimpleNamespace(
        chat=types.SimpleNamespace(completions=types.SimpleNamespace(create=_fake_chat_create))
    )
    monkeypatch.setattr(openai_client, "get_client", lambda: fake_client)
    yield llm


@pytest.fixture
def missing_openai_key(monkeypatch, mock_openai):
    """Undo the OpenAI mock and configure no key, so building the real client fails."""
    monkeypatch.setattr(openai_client, "get_client", _REAL_GET_CLIENT)
    monkeypatch.setattr(openai_client, "_client", None)
    monkeypatch.setattr(openai_client, "config", dataclasses.replace(openai_client.config, openai_api_key=""))


# -------- Mock for Leonardo --------
class FakeLeonardo:
    """
    Stands in for LeonardoClient.generate. `failures[label]` is how many more calls for that
    label fail; `always_fail` labels never succeed; `error` is the failure text.
    """

    def __init__(self):
        self.requests = []
        self.failures = {}
        self.always_fail = set()
        self.error = "generation failed upstream"
        self._n = 0

    async def generate(self, req, *, label="image"):
        self.requests.append((label, req))
        if label in self.always_fail or self.failures.get(label, 0) > 0:
            if self.failures.get(label, 0) > 0:
                self.failures[label] -= 1
            raise GenerationFailed(self.error)
        self._n += 1
        png = tiny_png(max(8, req.width // 16), max(8, req.height // 16))
        return PollResult(status="complete", image_url=to_data_url(png), external_image_id=f"gen-{label}-{self._n}")

    def labels(self):
        return [label for label, _ in self.requests]


@pytest.fixture(autouse=True)
def leonardo(monkeypatch):
    fake = FakeLeonardo()
    monkeypatch.setattr(leonardo_client, "client", fake)
    return fake


@pytest.fixture(autouse=True)
def no_wait(monkeypatch):
    waits = []

    async def _pause(seconds):
        waits.append(seconds)

    monkeypatch.setattr(pacing, "pause", _pause)
    return waits


# -------- Workspace --------
@pytest.fixture
def store(tmp_path):
    return ComicStore(root=str(tmp_path / "comics"))


@pytest.fixture
def uploader(tmp_path):
    return LocalUploader(root=str(tmp_path / "outputs"), base_url=BASE_URL)


@pytest.fixture
def memory(tmp_path):
    return Memory(path=str(tmp_path / "memory.json"), session_id="test")


@pytest.fixture
def session():
    return SessionState()


@pytest.fixture
def ctx(store, uploader, memory, session):
    return ToolContext(store=store, uploader=uploader, memory=memory, session=session)


@pytest.fixture
def seeded(ctx):
    """A three-page comic with 8 panels and 2 characters, written straight to the store."""
    from comicsmith.features.panels.schemas import DraftPanel
    from comicsmith.features.panels.service import build_panels
    from comicsmith.lib.layouts import layout_for_page_count
    from comicsmith.schemas import Character

    layout = layout_for_page_count(3)
    comic_id = ctx.store.create_comic({"storyContext": "A fox and an owl get lost", "pageCount": 3, "layoutName": layout.name})
    drafts = [DraftPanel.model_validate(p) for p in panels_payload(layout.total_panels)]
    ctx.store.replace_panels(comic_id, build_panels(drafts, layout))
    ctx.store.replace_characters(comic_id, [
        Character(char_id=c["id"], display_name=c["name"], description=c["description"], prompt=c["description"])
        for c in characters_payload(2)
    ])
    ctx.session.comic_id = comic_id
    return comic_id
