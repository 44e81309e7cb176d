# tests/test_cli.py
import pytest

import comicsmith.cli as cli
from comicsmith import __version__
from comicsmith.agent.controller import build_agent


@pytest.fixture
def patched_agent(monkeypatch, store, uploader, memory):
    monkeypatch.setattr(cli, "build_agent", lambda: build_agent(store=store, uploader=uploader, memory=memory))


def test_version(capsys):
    with pytest.raises(SystemExit) as e:
        cli.main(["--version"])
    assert e.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_unknown_command_exits_1():
    with pytest.raises(SystemExit) as e:
        cli.main(["paint"])
    assert e.value.code == 1


def test_chat_needs_a_prompt(capsys):
    assert cli.main(["chat"]) == 1
    assert "needs a prompt" in capsys.readouterr().err


def test_chat_one_turn(patched_agent, capsys):
    assert cli.main(["chat", "make", "a", "comic"]) == 0
    assert "All done." in capsys.readouterr().out


def test_startup_failure(monkeypatch, capsys):
    def _broken():
        raise RuntimeError("no key")

    monkeypatch.setattr(cli, "build_agent", _broken)
    assert cli.main(["chat", "hello"]) == 1
    assert "failed to start: no key" in capsys.readouterr().err


def test_missing_openai_key_is_a_clean_startup_failure(missing_openai_key, capsys):
    assert cli.main(["chat", "hello"]) == 1
    assert "failed to start: OPENAI_API_KEY is not set" in capsys.readouterr().err


def test_interactive_commands(patched_agent, monkeypatch, capsys):
    lines = iter(["", "memory", "hello there", "clear", "quit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    assert cli.main([]) == 0
    out = capsys.readouterr().out
    assert '"sessionId"' in out
    assert "All done." in out
    assert "Conversation cleared." in out


def test_interactive_eof(patched_agent, monkeypatch):
    def _eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)
    assert cli.main([]) == 0
