# tests/test_api.py
import dataclasses
import json
import os

import pytest
from fastapi.testclient import TestClient

from conftest import _MockChatResponse, tiny_png, tool_calls_reply
import comicsmith.main as main
from comicsmith.agent.controller import build_agent
from comicsmith.features.chat import router
from comicsmith.lib.paths import outputs_dir


@pytest.fixture
def client(monkeypatch, store, uploader, memory):
    monkeypatch.setattr(main, "build_agent", lambda: build_agent(store=store, uploader=uploader, memory=memory))
    with TestClient(main.app) as c:
        yield c


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "agent": "ready"}


def test_health_without_agent(monkeypatch):
    def _broken():
        raise RuntimeError("OPENAI_API_KEY missing")

    monkeypatch.setattr(main, "build_agent", _broken)
    with TestClient(main.app) as c:
        assert c.get("/health").json()["agent"] == "not initialized"
        assert c.post("/chat", json={"message": "hi"}).status_code == 503


def test_health_without_openai_key(missing_openai_key):
    with TestClient(main.app) as c:
        assert c.get("/health").json()["agent"] == "not initialized"
        assert c.post("/chat", json={"message": "hi"}).status_code == 503


@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}])
def test_chat_requires_a_message(client, body):
    resp = client.post("/chat", json=body)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Message is required"


def test_chat_plain_reply(client):
    resp = client.post("/chat", json={"message": "What can you do?"})
    assert resp.status_code == 200
    assert resp.json() == {"response": "All done."}


def test_chat_returns_panel_urls(client, mock_openai):
    mock_openai.agent_replies.extend([
        tool_calls_reply(
            ("generate_panels", {"storyContext": "A fox and an owl get lost", "pageCount": 1}),
            ("generate_characters", {"count": 1}),
            ("generate_leonardo_images", {"generateType": "panels"}),
        ),
        _MockChatResponse("Here is your panel."),
    ])
    resp = client.post("/chat", json={"message": "Draw it"})
    body = resp.json()
    assert resp.status_code == 200
    assert body["response"] == "Here is your panel."
    assert body["panelUrls"] == ["http://testserver/outputs/comic/panels/panel1.png"]
    assert "pageUrls" not in body


def test_chat_turn_failure_is_500(client, mock_openai):
    mock_openai.overrides["agent"] = [RuntimeError("model exploded")]
    resp = client.post("/chat", json={"message": "hello"})
    assert resp.status_code == 500
    assert "model exploded" in resp.json()["detail"]


def test_get_comic(client, store):
    comic_id = store.create_comic({"storyContext": "A short one", "pageCount": 1})
    resp = client.get(f"/comics/{comic_id}")
    assert resp.status_code == 200
    assert resp.json()["comicId"] == comic_id
    assert resp.json()["status"] == "draft"

    assert client.get("/comics/doesnotexist").status_code == 404
    assert client.get("/comics/.hidden").status_code == 400


def test_outputs_listing_and_download(client):
    folder = os.path.join(outputs_dir(), "comic", "pages")
    os.makedirs(folder, exist_ok=True)
    data = tiny_png()
    with open(os.path.join(folder, "page_1.png"), "wb") as f:
        f.write(data)

    with open(os.path.join(folder, "notes.txt"), "w") as f:
        f.write("not an image")

    listing = client.get("/outputs").json()["images"]
    entry = next(i for i in listing if i["path"] == "comic/pages/page_1.png")
    assert entry["filename"] == "page_1.png"
    assert not any(i["filename"] == "notes.txt" for i in listing)
    assert entry["url"].endswith("/outputs/comic/pages/page_1.png")

    resp = client.get("/outputs/comic/pages/page_1.png")
    assert resp.status_code == 200
    assert resp.content == data
    assert client.get("/outputs/comic/pages/missing.png").status_code == 404


def test_chat_turns_are_journaled(client, monkeypatch, tmp_path):
    journal = tmp_path / "prompts.jsonl"
    monkeypatch.setattr(router, "config", dataclasses.replace(router.config, prompt_log=True))
    monkeypatch.setattr(router, "prompt_log_path", lambda: str(journal))

    client.post("/chat", json={"message": "Tell me a story"})
    entry = json.loads(journal.read_text().splitlines()[-1])
    assert entry["prompt"] == "Tell me a story"
    assert entry["response"] == "All done."
    assert entry["timestamp"]
