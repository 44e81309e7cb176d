# comicsmith/agent/memory.py
from __future__ import annotations

import json
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Literal, Optional

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from comicsmith.config import config
from comicsmith.lib.jsonio import load_json, save_json_atomic
from comicsmith.logger import get_logger
from comicsmith.schemas import CamelModel, utcnow

log = get_logger(__name__)

Outcome = Literal["success", "failure", "timeout"]

MAX_SUCCESS_SNAPSHOTS = 10
MAX_ATTEMPTS_PER_TOOL = 50
MAX_SESSION_LOG = 50
CONTEXT_STACK_SIZE = 20
ERROR_PREFIX_LEN = 48

# Params a retry may reasonably borrow from an earlier success; content params never carry over.
TUNABLE_PARAMS = frozenset({"seed", "temperature", "contextLimit", "simplifyPrompts", "useTextImages"})


class AttemptRecord(CamelModel):
    timestamp: str = Field(default_factory=utcnow)
    tool_name: str
    input: Dict[str, Any] = Field(default_factory=dict)
    outcome: Outcome
    error: Optional[str] = None
    attempt_number: int
    context: Optional[Dict[str, Any]] = None


class SuccessSnapshot(CamelModel):
    params: Dict[str, Any]
    timestamp: str = Field(default_factory=utcnow)


class ToolPreference(CamelModel):
    success_count: int = 0
    successful_params: List[SuccessSnapshot] = Field(default_factory=list)


class ErrorBucket(CamelModel):
    count: int = 0
    representative: str


class FailurePattern(CamelModel):
    failure_count: int = 0
    bucketed_errors: Dict[str, ErrorBucket] = Field(default_factory=dict)


class MemoryDocument(CamelModel):
    tool_preferences: Dict[str, ToolPreference] = Field(default_factory=dict)
    failure_patterns: Dict[str, FailurePattern] = Field(default_factory=dict)
    last_updated: Optional[str] = None


@dataclass
class Suggestion:
    strategy: Literal["default", "use_successful_pattern"]
    modifications: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0


@dataclass
class SessionMemory:
    session_id: str
    tool_attempts: Dict[str, List[AttemptRecord]] = field(default_factory=dict)
    failed_operations: Deque[Dict[str, Any]] = field(default_factory=lambda: deque(maxlen=MAX_SESSION_LOG))
    successful_strategies: Deque[Dict[str, Any]] = field(default_factory=lambda: deque(maxlen=MAX_SESSION_LOG))
    context_stack: Deque[Dict[str, Any]] = field(default_factory=lambda: deque(maxlen=CONTEXT_STACK_SIZE))


class Memory:
    """
    Two scopes:
    - session (volatile): attempts per tool, failed operations, strategies that worked, caller context
    - persistent: per-tool success snapshots and bucketed failure patterns, one JSON document
      rewritten atomically after every learning update
    """

    def __init__(self, path: Optional[str] = None, *, session_id: Optional[str] = None):
        self.path = str(path or config.memory_path)
        self.session = SessionMemory(session_id=session_id or uuid.uuid4().hex[:8])
        self.document = self._load()

    # --- persistence ---

    def _load(self) -> MemoryDocument:
        try:
            data = load_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            log.warning(f"memory document {self.path} unreadable, starting fresh: {e}")
            return MemoryDocument()
        if data is None:
            return MemoryDocument()
        try:
            return MemoryDocument.model_validate(data)
        except PydanticValidationError as e:
            log.warning(f"memory document {self.path} has an unexpected shape, starting fresh: {e.error_count()} errors")
            return MemoryDocument()

    def save(self) -> None:
        self.document.last_updated = utcnow()
        try:
            save_json_atomic(self.path, self.document.to_json_dict())
        except OSError as e:
            log.warning(f"failed to persist memory to {self.path}: {e}")

    # --- session context ---

    def push_context(self, context: Dict[str, Any]) -> None:
        self.session.context_stack.append({**context, "timestamp": utcnow()})

    def current_context(self) -> Optional[Dict[str, Any]]:
        return self.session.context_stack[-1] if self.session.context_stack else None

    # --- attempts ---

    def record_attempt(
        self, tool: str, input: Dict[str, Any], outcome: Outcome, error: Optional[str] = None
    ) -> AttemptRecord:
        attempts = self.session.tool_attempts.setdefault(tool, [])
        record = AttemptRecord(
            tool_name=tool,
            input=dict(input),
            outcome=outcome,
            error=error,
            attempt_number=len(attempts) + 1,
            context=self.current_context(),
        )
        attempts.append(record)
        if len(attempts) > MAX_ATTEMPTS_PER_TOOL:
            del attempts[: len(attempts) - MAX_ATTEMPTS_PER_TOOL]
        if outcome != "success":
            self.session.failed_operations.append({"tool": tool, "error": error, "timestamp": record.timestamp})
        return record

    def attempt_count(self, tool: str) -> int:
        return len(self.session.tool_attempts.get(tool, []))

    def last_attempt(self, tool: str) -> Optional[AttemptRecord]:
        attempts = self.session.tool_attempts.get(tool)
        return attempts[-1] if attempts else None

    def failure_records(self, tool: str) -> List[AttemptRecord]:
        return [a for a in self.session.tool_attempts.get(tool, []) if a.outcome != "success"]

    def note_strategy(self, tool: str, strategy_type: str, modifications: Dict[str, Any]) -> None:
        """Remember a retry strategy that led to a success in this session."""
        self.session.successful_strategies.append(
            {"tool": tool, "strategy": strategy_type, "modifications": modifications, "timestamp": utcnow()}
        )

    # --- learning ---

    def learn_success(self, tool: str, input: Dict[str, Any]) -> None:
        pref = self.document.tool_preferences.setdefault(tool, ToolPreference())
        pref.success_count += 1
        pref.successful_params.append(SuccessSnapshot(params=dict(input)))
        pref.successful_params = pref.successful_params[-MAX_SUCCESS_SNAPSHOTS:]
        self.save()

    def learn_failure(self, tool: str, error: str) -> None:
        pattern = self.document.failure_patterns.setdefault(tool, FailurePattern())
        pattern.failure_count += 1
        key = (error or "unknown error")[:ERROR_PREFIX_LEN]
        bucket = pattern.bucketed_errors.get(key)
        if bucket is None:
            bucket = pattern.bucketed_errors[key] = ErrorBucket(representative=error or "unknown error")
        bucket.count += 1
        self.save()

    def confidence(self, tool: str) -> float:
        pref = self.document.tool_preferences.get(tool)
        pattern = self.document.failure_patterns.get(tool)
        successes = pref.success_count if pref else 0
        failures = pattern.failure_count if pattern else 0
        total = successes + failures
        return successes / total if total else 0.0

    def suggest_from_history(self, tool: str, current_input: Dict[str, Any]) -> Suggestion:
        pref = self.document.tool_preferences.get(tool)
        if not pref or not pref.successful_params:
            return Suggestion(strategy="default")
        last = pref.successful_params[-1].params
        modifications = {
            k: v for k, v in last.items() if k in TUNABLE_PARAMS and current_input.get(k) != v
        }
        if not modifications:
            return Suggestion(strategy="default", confidence=self.confidence(tool))
        return Suggestion(strategy="use_successful_pattern", modifications=modifications, confidence=self.confidence(tool))

    # --- reporting ---

    def summary(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session.session_id,
            "sessionAttempts": {t: len(a) for t, a in self.session.tool_attempts.items()},
            "failedOperations": len(self.session.failed_operations),
            "successfulStrategies": len(self.session.successful_strategies),
            "tools": {
                tool: {
                    "successCount": (self.document.tool_preferences.get(tool) or ToolPreference()).success_count,
                    "failureCount": (self.document.failure_patterns.get(tool) or FailurePattern()).failure_count,
                    "confidence": round(self.confidence(tool), 3),
                }
                for tool in sorted(set(self.document.tool_preferences) | set(self.document.failure_patterns))
            },
            "lastUpdated": self.document.last_updated,
        }

    def clear_session(self) -> None:
        self.session = SessionMemory(session_id=uuid.uuid4().hex[:8])
        log.info("session memory cleared")
