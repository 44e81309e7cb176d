# tests/test_registry.py
import asyncio
import json
import random

import pytest

from comicsmith.agent.calls import CALL_SCHEMAS, GeneratePanelsCall, parse_tool_call
from comicsmith.agent.controller import default_tools
from comicsmith.agent.decision import DecisionEngine
from comicsmith.agent.registry import Registry
from comicsmith.features.layout.tool import SelectLayoutTool
from comicsmith.features.panels.schemas import GeneratePanelsParams
from comicsmith.result import Err, ErrorKind, Ok

IMAGES = "generate_leonardo_images"


@pytest.fixture
def registry(memory):
    return Registry(default_tools(), memory, DecisionEngine(memory, rng=random.Random(7)))


async def _invoke(registry, ctx, name, arguments):
    return json.loads(await registry.invoke_raw(name, arguments, ctx))


# -------- call parsing --------
def test_every_tool_has_a_call_variant():
    assert set(CALL_SCHEMAS) == {t.name for t in default_tools()}
    assert CALL_SCHEMAS["generate_panels"] is GeneratePanelsParams


def test_parse_tool_call_accepts_json_text():
    parsed = parse_tool_call("generate_panels", '{"storyContext": "a heist", "pageCount": 4, "mood": "grim"}')
    assert isinstance(parsed, Ok)
    assert isinstance(parsed.value, GeneratePanelsCall)
    assert parsed.value.arguments.page_count == 4


@pytest.mark.parametrize(
    "name,arguments,fragment",
    [
        ("make_coffee", {}, "Unknown tool"),
        ("compose_pages", "{not json", "not valid JSON"),
        ("generate_panels", "{}", "Invalid parameters for generate_panels"),
        ("select_comic_layout", {"pageCount": 9}, "pageCount"),
        ("edit_panel", "[1, 2]", "must be a JSON object"),
    ],
)
def test_parse_tool_call_rejects(name, arguments, fragment):
    parsed = parse_tool_call(name, arguments)
    assert isinstance(parsed, Err)
    assert parsed.kind == ErrorKind.VALIDATION
    assert fragment in parsed.message


# -------- discovery --------
def test_list_tools(registry):
    tools = {t["name"]: t for t in registry.list_tools()}
    assert len(tools) == 10
    assert tools["generate_panels"]["requiredParams"] == ["storyContext"]
    assert "pageCount" in tools["generate_panels"]["optionalParams"]
    assert tools[IMAGES]["maxAttempts"] == 3
    assert tools["edit_panel"]["maxAttempts"] == 2

    params = registry.tool_params()
    assert all(p["type"] == "function" for p in params)
    panels = next(p for p in params if p["function"]["name"] == "generate_panels")
    assert "storyContext" in panels["function"]["parameters"]["properties"]


# -------- envelopes --------
@pytest.mark.asyncio
async def test_invalid_call_never_runs(registry, ctx, memory, mock_openai):
    payload = await _invoke(registry, ctx, "generate_panels", "{}")
    assert payload["success"] is False
    assert payload["kind"] == "validation"
    assert payload["attemptCount"] == 0
    assert memory.attempt_count("generate_panels") == 0
    assert mock_openai.calls == []


@pytest.mark.asyncio
async def test_unknown_tool_lists_alternatives(registry, ctx):
    payload = await _invoke(registry, ctx, "make_coffee", {})
    assert payload["attemptCount"] == 0
    assert "compose_pages" in payload["availableTools"]


@pytest.mark.asyncio
async def test_success_reports_one_attempt(registry, ctx, memory):
    payload = await _invoke(registry, ctx, "generate_panels", {"storyContext": "A fox and an owl get lost"})
    assert payload["success"] is True
    assert payload["attemptCount"] == 1
    assert payload["totalPanels"] == 8
    assert memory.document.tool_preferences["generate_panels"].success_count == 1


@pytest.mark.asyncio
async def test_credential_text_stops_after_one_attempt(registry, ctx, memory, mock_openai):
    mock_openai.overrides["panels"] = ["API key invalid"]
    payload = await _invoke(registry, ctx, "generate_panels", {"storyContext": "A fox and an owl get lost"})

    assert payload["success"] is False
    assert payload["attemptCount"] == 1
    assert payload["reason"] == "Unrecoverable error detected"
    assert payload["rawResponse"] == "API key invalid"
    assert payload["alternative"]["approach"] == "manual_intervention"
    assert len([c for c in mock_openai.calls if c[0] == "panels"]) == 1


@pytest.mark.asyncio
async def test_unparseable_reply_is_retried_once(registry, ctx, memory, mock_openai, no_wait):
    mock_openai.overrides["panels"] = ["I would love to help with that story!"]
    payload = await _invoke(registry, ctx, "generate_panels", {"storyContext": "A fox and an owl get lost"})

    assert payload["success"] is True
    assert payload["attemptCount"] == 2
    assert len(no_wait) == 1
    strategies = memory.session.successful_strategies
    assert [s["strategy"] for s in strategies] == ["modify_parameters"]
    assert "seed" in strategies[0]["modifications"]


@pytest.mark.asyncio
async def test_image_budget_is_three_attempts(registry, ctx, seeded, memory, leonardo, no_wait):
    leonardo.always_fail.update({"char_1", "char_2"})
    payload = await _invoke(registry, ctx, IMAGES, {"generateType": "characters"})

    assert payload["success"] is False
    assert payload["attemptCount"] == 3
    assert payload["reason"] == "Max retries (3) reached"
    assert payload["alternative"]["approach"] == "generate_individually"
    assert memory.attempt_count(IMAGES) == 3
    assert len(leonardo.requests) == 6
    # reduce_context, then change_seed
    assert 5.0 in no_wait and 8.0 in no_wait


@pytest.mark.asyncio
async def test_partial_batch_retries_failed_panels_individually(registry, ctx, seeded, memory, leonardo):
    leonardo.failures.update({"panel3": 2, "panel5": 2})
    payload = await _invoke(registry, ctx, IMAGES, {"generateType": "panels"})

    assert payload["success"] is True
    assert payload["attemptCount"] == 1
    assert payload["partial"] is False
    assert payload["failedPanels"] == []
    assert payload["summary"]["successfulPanels"] == 8
    assert [r["panelId"] for r in payload["individualRetries"]] == ["panel3", "panel5"]
    assert all(r["success"] for r in payload["individualRetries"])
    assert {"panel3", "panel5"} <= set(payload["sourceMap"])
    assert len(memory.failure_records(IMAGES)) == 2
    assert leonardo.labels()[-2:] == ["panel3", "panel5"]


@pytest.mark.asyncio
async def test_panel_that_keeps_failing_is_reported(registry, ctx, seeded, leonardo):
    leonardo.always_fail.add("panel4")
    payload = await _invoke(registry, ctx, IMAGES, {"generateType": "panels"})

    assert payload["success"] is True
    assert payload["partial"] is True
    assert payload["failedPanels"] == ["panel4"]
    assert payload["alternative"]["panels"] == ["panel4"]
    assert payload["individualRetries"][0]["success"] is False


class _SlowLayoutTool(SelectLayoutTool):
    timeout_seconds = 0.01

    async def run(self, params, ctx):
        await asyncio.sleep(1)
        return await super().run(params, ctx)


@pytest.mark.asyncio
async def test_timeouts_grow_then_give_up(ctx, memory, no_wait):
    registry = Registry([_SlowLayoutTool()], memory)
    payload = await _invoke(registry, ctx, "select_comic_layout", {"pageCount": 3})

    assert payload["success"] is False
    assert payload["kind"] == "timeout"
    assert payload["attemptCount"] == 2
    assert no_wait == [5.0]
    assert [a.outcome for a in memory.session.tool_attempts["select_comic_layout"]] == ["timeout", "timeout"]
