# tests/test_memory.py
import json

from comicsmith.agent.memory import MAX_SESSION_LOG, MAX_SUCCESS_SNAPSHOTS, Memory


def test_attempts_are_numbered_per_tool(memory):
    memory.record_attempt("generate_panels", {"seed": 1}, "failure", "boom")
    memory.record_attempt("generate_panels", {"seed": 2}, "success")
    memory.record_attempt("compose_pages", {}, "timeout", "timed out")
    assert memory.attempt_count("generate_panels") == 2
    assert memory.last_attempt("generate_panels").attempt_number == 2
    assert [a.error for a in memory.failure_records("generate_panels")] == ["boom"]
    assert len(memory.session.failed_operations) == 2


def test_session_failure_log_is_bounded(memory):
    for i in range(MAX_SESSION_LOG + 5):
        memory.record_attempt("compose_pages", {}, "failure", f"boom {i}")
    failed = memory.session.failed_operations
    assert len(failed) == MAX_SESSION_LOG
    assert failed[0]["error"] == "boom 5"
    assert memory.summary()["failedOperations"] == MAX_SESSION_LOG


def test_attempts_carry_current_context(memory):
    memory.push_context({"tool": "generate_panels", "params": {"pageCount": 3}})
    record = memory.record_attempt("generate_panels", {}, "success")
    assert record.context["tool"] == "generate_panels"


def test_learning_persists_and_reloads(tmp_path):
    path = str(tmp_path / "mem.json")
    m = Memory(path=path)
    for seed in range(MAX_SUCCESS_SNAPSHOTS + 3):
        m.learn_success("generate_panels", {"seed": seed})
    m.learn_failure("generate_panels", "rate limit exceeded for model gpt-4o-mini, retry after 12:00:01")
    m.learn_failure("generate_panels", "rate limit exceeded for model gpt-4o-mini, retry after 12:00:02")

    reloaded = Memory(path=path)
    pref = reloaded.document.tool_preferences["generate_panels"]
    assert pref.success_count == MAX_SUCCESS_SNAPSHOTS + 3
    assert len(pref.successful_params) == MAX_SUCCESS_SNAPSHOTS
    assert pref.successful_params[-1].params == {"seed": MAX_SUCCESS_SNAPSHOTS + 2}
    pattern = reloaded.document.failure_patterns["generate_panels"]
    assert pattern.failure_count == 2
    # same 48-char prefix lands in the same bucket
    assert [b.count for b in pattern.bucketed_errors.values()] == [2]

    with open(path) as f:
        doc = json.load(f)
    assert "toolPreferences" in doc and "failurePatterns" in doc and doc["lastUpdated"]


def test_corrupt_document_starts_fresh(tmp_path):
    path = tmp_path / "mem.json"
    path.write_text("{not json")
    m = Memory(path=str(path))
    assert m.document.tool_preferences == {}
    m.learn_success("compose_pages", {})
    assert json.loads(path.read_text())["toolPreferences"]["compose_pages"]["successCount"] == 1


def test_confidence_and_suggestions(memory):
    assert memory.confidence("generate_panels") == 0.0
    assert memory.suggest_from_history("generate_panels", {}).strategy == "default"

    memory.learn_success("generate_panels", {"storyContext": "a fox", "seed": 42, "temperature": 0.5})
    memory.learn_failure("generate_panels", "boom")
    assert memory.confidence("generate_panels") == 0.5

    s = memory.suggest_from_history("generate_panels", {"storyContext": "an owl", "seed": 7})
    assert s.strategy == "use_successful_pattern"
    # content never carries over, only tunables
    assert s.modifications == {"seed": 42, "temperature": 0.5}


def test_summary_and_clear(memory):
    memory.record_attempt("compose_pages", {}, "success")
    memory.learn_success("compose_pages", {})
    summary = memory.summary()
    assert summary["sessionAttempts"] == {"compose_pages": 1}
    assert summary["tools"]["compose_pages"]["successCount"] == 1
    memory.clear_session()
    assert memory.attempt_count("compose_pages") == 0
    # persistent learning survives a session clear
    assert memory.summary()["tools"]["compose_pages"]["successCount"] == 1
