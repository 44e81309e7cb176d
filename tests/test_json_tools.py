# tests/test_json_tools.py
from comicsmith.lib.json_tools import extract_json


def test_fenced_block_wins():
    text = 'Sure!\n```json\n[{"a": 1}]\n```\nanything else {"b": 2}'
    assert extract_json(text) == [{"a": 1}]


def test_first_balanced_substring_in_prose():
    text = 'Here are the panels: {"panels": [{"d": "a [bracket] inside"}]} hope that helps'
    assert extract_json(text) == {"panels": [{"d": "a [bracket] inside"}]}


def test_brackets_inside_strings_do_not_confuse_the_scanner():
    text = 'x [{"text": "she said \\"}]\\" loudly"}] y'
    assert extract_json(text) == [{"text": 'she said "}]" loudly'}]


def test_skips_unparseable_candidates():
    assert extract_json("[not json] then {\"ok\": true}") == {"ok": True}


def test_nothing_usable_returns_none():
    assert extract_json("") is None
    assert extract_json("   ") is None
    assert extract_json("no json at all") is None
    assert extract_json("[unterminated") is None
