# comicsmith/agent/registry.py
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from comicsmith.agent.calls import parse_tool_call
from comicsmith.agent.decision import IMAGE_TOOL, DecisionEngine, Strategy
from comicsmith.agent.memory import Memory
from comicsmith.agent.session import ToolContext
from comicsmith.agent.tool import Tool, dumps
from comicsmith.config import config
from comicsmith.lib import pacing
from comicsmith.logger import get_logger
from comicsmith.result import Err, ErrorKind, Ok, Result

log = get_logger(__name__)

INDIVIDUAL_RETRY_GAP_SECONDS = 5


class Registry:
    """
    Owns the tool set and runs every invocation through a bounded retry loop:
    validate, execute under a timeout, evaluate, record in memory, then either return
    or apply the decision engine's strategy and go again.
    """

    def __init__(
        self,
        tools: Iterable[Tool],
        memory: Memory,
        engine: Optional[DecisionEngine] = None,
        *,
        default_timeout: Optional[float] = None,
    ):
        self.tools: Dict[str, Tool] = {t.name: t for t in tools}
        self.memory = memory
        self.engine = engine or DecisionEngine(memory)
        self.default_timeout = default_timeout or config.tool_timeout_seconds

    # --- discovery ---

    def list_tools(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": t.name,
                "description": t.description,
                "requiredParams": t.required_params,
                "optionalParams": t.optional_params,
                "maxAttempts": self.engine.max_attempts(t.name),
            }
            for t in self.tools.values()
        ]

    def tool_params(self) -> List[Dict[str, Any]]:
        return [t.to_param() for t in self.tools.values()]

    # --- invocation ---

    async def invoke_raw(self, name: str, arguments: Union[str, Dict[str, Any], None], ctx: ToolContext) -> str:
        """Entry point for model-issued calls: parse into a call variant, then invoke."""
        parsed = parse_tool_call(name, arguments)
        if isinstance(parsed, Err):
            log.warning(f"rejected call to {name}: {parsed.message}")
            return dumps({
                **parsed.payload,
                "success": False,
                "error": parsed.message,
                "kind": parsed.kind.value,
                "attemptCount": 0,
            })
        return await self.invoke(parsed.value, ctx)

    async def invoke(self, call: BaseModel, ctx: ToolContext) -> str:
        tool = self.tools.get(call.name)
        if tool is None:
            return dumps({
                "success": False,
                "error": f"Tool {call.name} is not registered",
                "kind": ErrorKind.VALIDATION.value,
                "attemptCount": 0,
                "availableTools": sorted(self.tools),
            })
        params = call.arguments.model_dump(by_alias=True, exclude_none=True)
        payload = await self._run_with_retry(tool, params, ctx, retry_partial=True)
        return dumps(payload)

    async def _attempt(self, tool: Tool, params: Dict[str, Any], ctx: ToolContext, timeout: float) -> Result:
        try:
            validated = tool.schema.model_validate(params)
        except PydanticValidationError as e:
            message = f"Invalid parameters for {tool.name}: {e.error_count()} errors"
            return Err(ErrorKind.VALIDATION, message, {"success": False, "error": message})
        try:
            raw = await asyncio.wait_for(tool.execute(validated, ctx), timeout=timeout)
        except asyncio.TimeoutError:
            message = f"{tool.name} timed out after {timeout:.0f}s"
            return Err(ErrorKind.TIMEOUT, message, {"success": False, "error": message})
        return self.engine.evaluate_result(tool.name, json.loads(raw))

    async def _run_with_retry(
        self, tool: Tool, params: Dict[str, Any], ctx: ToolContext, *, retry_partial: bool
    ) -> Dict[str, Any]:
        budget = self.engine.max_attempts(tool.name)
        timeout = float(tool.timeout_seconds or self.default_timeout)
        params = dict(params)
        strategy: Optional[Strategy] = None
        self.memory.push_context({"tool": tool.name, "params": dict(params)})

        err: Optional[Err] = None
        for attempt in range(budget):
            log.info(f"[{tool.name}] attempt {attempt + 1}/{budget}")
            result = await self._attempt(tool, params, ctx, timeout)

            if isinstance(result, Ok):
                payload = result.value
                self.memory.record_attempt(tool.name, params, "success")
                self.memory.learn_success(tool.name, params)
                if strategy is not None:
                    self.memory.note_strategy(tool.name, strategy.type, strategy.modifications)
                if retry_partial and payload.get("partial"):
                    payload = await self._retry_failed_panels(tool, payload, ctx)
                return {**payload, "attemptCount": attempt + 1}

            err = result
            outcome = "timeout" if err.kind == ErrorKind.TIMEOUT else "failure"
            self.memory.record_attempt(tool.name, params, outcome, err.message)
            self.memory.learn_failure(tool.name, err.message)

            decision = self.engine.should_retry(tool.name, err, attempt, {**params, "timeout": timeout})
            if not decision.should_retry:
                log.warning(f"[{tool.name}] giving up: {err.message} ({decision.reason})")
                return self._failure(tool, err, attempt + 1, decision.reason)

            strategy = decision.strategy
            log.info(f"[{tool.name}] {err.message}; retrying with {strategy.type} ({decision.reason})")
            modifications = dict(strategy.modifications)
            if "timeout" in modifications:
                timeout = float(modifications.pop("timeout"))
            params.update(modifications)
            await pacing.pause(strategy.wait_ms / 1000)

        return self._failure(tool, err, budget, f"Max retries ({budget}) reached")

    def _failure(self, tool: Tool, err: Err, attempts: int, reason: str) -> Dict[str, Any]:
        return {
            **err.payload,
            "success": False,
            "error": err.message,
            "kind": err.kind.value,
            "attemptCount": attempts,
            "reason": reason,
            "alternative": self.engine.alternative(tool.name),
        }

    async def _retry_failed_panels(self, tool: Tool, payload: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
        """Batch came back partial: re-run each failed panel alone, then merge what succeeded."""
        failed: List[str] = list(payload.get("failedPanels") or [])
        panels: List[Dict[str, Any]] = list((payload.get("results") or {}).get("panels") or [])
        errors = {p["id"]: p.get("error") for p in panels if p.get("error")}
        for pid in failed:
            self.memory.record_attempt(tool.name, {"specificPanel": pid}, "failure", errors.get(pid))
            self.memory.learn_failure(tool.name, errors.get(pid) or "panel generation failed")

        log.info(f"[{tool.name}] retrying {len(failed)} failed panels individually: {failed}")
        source_map = dict(payload.get("sourceMap") or {})
        individual: List[Dict[str, Any]] = []
        for pid in failed:
            await pacing.pause(INDIVIDUAL_RETRY_GAP_SECONDS)
            sub = await self._run_with_retry(
                tool, {"generateType": "panels", "specificPanel": pid}, ctx, retry_partial=False
            )
            entry = next(
                (p for p in (sub.get("results") or {}).get("panels") or [] if p.get("id") == pid), None
            )
            if sub.get("success") and entry and not entry.get("error"):
                panels = [entry if p.get("id") == pid else p for p in panels]
                source_map.update(sub.get("sourceMap") or {})
                individual.append({"panelId": pid, "success": True, "url": entry.get("url")})
            else:
                individual.append({"panelId": pid, "success": False, "error": sub.get("error") or (entry or {}).get("error")})

        still_failed = [p["id"] for p in panels if p.get("error")]
        succeeded = [p["id"] for p in panels if not p.get("error")]
        out = {
            **payload,
            "results": {**(payload.get("results") or {}), "panels": panels},
            "sourceMap": source_map,
            "individualRetries": individual,
            "partial": bool(still_failed),
            "failedPanels": still_failed,
            "successfulPanels": succeeded,
        }
        if "summary" in payload:
            out["summary"] = {**payload["summary"], "successfulPanels": len(succeeded), "failedPanels": still_failed}
        if still_failed:
            out["alternative"] = {**self.engine.alternative(IMAGE_TOOL), "panels": still_failed}
        return out
