# comicsmith/agent/decision.py
from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from comicsmith.agent.memory import Memory
from comicsmith.logger import get_logger
from comicsmith.result import TIMEOUT_RE, Err, ErrorKind, Ok, Result, classify_error, is_unrecoverable, kind_of

log = get_logger(__name__)

IMAGE_TOOL = "generate_leonardo_images"

MAX_ATTEMPTS: Dict[str, int] = {
    IMAGE_TOOL: 3,
    "generate_panels": 2,
    "generate_characters": 2,
    "place_dialogue_with_vision": 2,
    "compose_pages": 2,
}
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_CONTEXT_LIMIT = 4
DEFAULT_TIMEOUT_SECONDS = 120.0

_PARENTHETICAL_RE = re.compile(r"\([^)]*\)")
_INTENSIFIER_RE = re.compile(r"\b(very|extremely|incredibly|absolutely)\b", re.IGNORECASE)
_RATE_LIMIT_RE = re.compile(r"rate[\s_-]*limit|\b429\b", re.IGNORECASE)


def simplify_prompt(prompt: str) -> str:
    """Drop parenthetical detail and intensifiers, collapse whitespace."""
    out = _PARENTHETICAL_RE.sub("", prompt)
    out = _INTENSIFIER_RE.sub("", out)
    out = re.sub(r"\s+", " ", out).strip()
    return re.sub(r"\s+([,.;:])", r"\1", out)


@dataclass
class Strategy:
    type: str
    modifications: Dict[str, Any] = field(default_factory=dict)
    wait_ms: int = 0
    reason: Optional[str] = None
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "modifications": self.modifications, "waitTime": self.wait_ms}
        if self.reason:
            out["reason"] = self.reason
        if self.confidence is not None:
            out["confidence"] = self.confidence
        return out


@dataclass
class Decision:
    should_retry: bool
    reason: str
    strategy: Optional[Strategy] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"shouldRetry": self.should_retry, "reason": self.reason}
        if self.strategy:
            out["strategy"] = self.strategy.to_dict()
        return out


class DecisionEngine:
    """
    Turns a failed attempt into a retry decision.
    `attempt` is the zero-based index of the attempt that just failed, so after the first
    failure attempt == 0 and attempt + 1 attempts have been spent.
    """

    def __init__(self, memory: Memory, *, budgets: Optional[Dict[str, int]] = None, rng: Optional[random.Random] = None):
        self.memory = memory
        self.budgets = {**MAX_ATTEMPTS, **(budgets or {})}
        self.rng = rng or random.Random()

    def max_attempts(self, tool: str) -> int:
        return self.budgets.get(tool, DEFAULT_MAX_ATTEMPTS)

    def should_retry(self, tool: str, err: Err, attempt: int, params: Dict[str, Any]) -> Decision:
        budget = self.max_attempts(tool)
        if attempt + 1 >= budget:
            return Decision(False, f"Max retries ({budget}) reached")
        if err.kind == ErrorKind.UNRECOVERABLE or is_unrecoverable(err.message):
            return Decision(False, "Unrecoverable error detected")
        if not err.kind.retryable:
            return Decision(False, f"{err.kind.value} errors are not retried")
        if err.kind == ErrorKind.PARSE and attempt >= 1:
            return Decision(False, "Model output still unparseable after a retry")
        return Decision(
            True,
            f"Attempt {attempt + 2}/{budget}",
            self.strategy_for(tool, err.message, attempt, params),
        )

    def strategy_for(self, tool: str, error: str, attempt: int, params: Dict[str, Any]) -> Strategy:
        if tool == IMAGE_TOOL:
            return self._image_strategy(attempt, params)

        text = error or ""
        if TIMEOUT_RE.search(text):
            current = params.get("timeout") or DEFAULT_TIMEOUT_SECONDS
            return Strategy(
                "increase_timeout",
                {"timeout": current * 1.5},
                5000 * (attempt + 1),
                "Operation timed out, allowing more time",
            )
        if _RATE_LIMIT_RE.search(text):
            return Strategy("rate_limit_backoff", {}, 10000 * 2 ** attempt, "Rate limited, backing off")

        suggestion = self.memory.suggest_from_history(tool, params)
        if suggestion.strategy == "use_successful_pattern":
            return Strategy(
                "use_historical_success",
                suggestion.modifications,
                3000,
                "Reusing parameters from an earlier success",
                confidence=round(suggestion.confidence, 3),
            )

        seed = params.get("seed") or 0
        return Strategy(
            "modify_parameters",
            {"seed": seed + self.rng.randint(0, 99)},
            3000 * (attempt + 1),
            "Retrying with a perturbed seed",
        )

    def _image_strategy(self, attempt: int, params: Dict[str, Any]) -> Strategy:
        context_limit = params.get("contextLimit")
        context_size = DEFAULT_CONTEXT_LIMIT if context_limit is None else context_limit
        if attempt == 0 and context_size > 2:
            return Strategy("reduce_context", {"contextLimit": 2}, 5000, "Fewer context images")
        if attempt == 1:
            seed = params.get("seed") or 18000
            return Strategy("change_seed", {"seed": seed + self.rng.randint(0, 999)}, 8000, "Different seed")
        if attempt == 2:
            return Strategy(
                "simplify_prompt",
                {"simplifyPrompts": True, "contextLimit": 0},
                10000,
                "Simplified prompts without context images",
            )
        return Strategy("default_retry", {}, 5000 * (attempt + 1))

    # --- result evaluation ---

    def evaluate_result(self, tool: str, payload: Dict[str, Any]) -> Result:
        """
        Ok(payload) for success (payload["partial"] set when some units failed),
        Err for an explicit failure or a too-low per-panel success rate.
        """
        if not payload.get("success", False):
            message = str(payload.get("error") or "Tool reported failure")
            raw = str(payload.get("rawResponse") or "")
            kind = kind_of(payload.get("kind"), default=classify_error(message))
            if kind != ErrorKind.UNRECOVERABLE and is_unrecoverable(raw):
                kind = ErrorKind.UNRECOVERABLE
            return Err(kind, message, payload)

        if tool != IMAGE_TOOL:
            return Ok(payload)

        results = payload.get("results") or {}
        panels: List[Dict[str, Any]] = results.get("panels") or []
        characters = results.get("characters") or []
        units = panels or characters
        if not units:
            return Err(ErrorKind.TRANSIENT, "No images were generated", payload)

        failed = [u for u in units if u.get("error")]
        succeeded = [u for u in units if not u.get("error")]
        rate = len(succeeded) / len(units)
        if rate < 0.5:
            return Err(ErrorKind.TRANSIENT, f"Low success rate: {round(rate * 100)}%", payload)
        # only panels can be re-run one at a time (specificPanel)
        if failed and panels:
            return Ok({
                **payload,
                "partial": True,
                "failedPanels": [p["id"] for p in failed],
                "successfulPanels": [p["id"] for p in succeeded],
            })
        return Ok(payload)

    def alternative(self, tool: str) -> Dict[str, str]:
        if tool == IMAGE_TOOL:
            return {
                "approach": "generate_individually",
                "reason": "Batch generation failed, try generating panels one by one",
                "strategy": "Use specificPanel parameter for each failed panel",
            }
        return {
            "approach": "manual_intervention",
            "reason": "All automatic retries failed",
            "suggestion": "Review parameters and try with different settings",
        }
