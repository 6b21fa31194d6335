"""
Sequential action-chain executor.

Actions run strictly in list order. Each one resolves its params against
the current context, checks its guard conditions, waits out `delayMs`, runs
its handler and then follows `onSuccess` or `onError`. A failing action is
logged and routed to its `onError` branch; it never stops later siblings.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from ..errors import ActionError, PagewrightError
from ..expressions.templates import resolve_data_bindings_in_object
from ..expressions.values import to_number
from ..observability.logging_utils import redact_payload
from ..observability.metrics import MetricsRegistry, default_metrics
from ..resolution.conditions import evaluate_conditions
from .handlers import BUILTIN_HANDLERS, RESULT_ACTION_TYPES, ActionHandler, ActionRuntime
from .models import ActionOutcome, ActionRunResult, ActionStepResult

log = logging.getLogger("pagewright.actions")


def describe_error(exc: BaseException) -> Dict[str, Any]:
    """The `error` scope seen by an onError branch."""

    payload: Dict[str, Any] = {"message": str(exc) or type(exc).__name__, "type": type(exc).__name__}
    if isinstance(exc, PagewrightError):
        payload["code"] = exc.code
    return payload


class ActionEngine:
    def __init__(
        self,
        runtime: ActionRuntime,
        *,
        handlers: Optional[Dict[str, ActionHandler]] = None,
        metrics: MetricsRegistry | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.runtime = runtime
        self.handlers: Dict[str, ActionHandler] = dict(BUILTIN_HANDLERS)
        if handlers:
            self.handlers.update(handlers)
        self.metrics = metrics or default_metrics
        self._sleep = sleep

    def register_handler(self, action_type: str, handler: ActionHandler) -> None:
        self.handlers[action_type] = handler

    async def run(
        self,
        actions: Optional[Iterable[Mapping[str, Any]]],
        triggering_node_id: Optional[str] = None,
        aux_context: Optional[Mapping[str, Any]] = None,
        *,
        base_context: Optional[Mapping[str, Any]] = None,
    ) -> ActionRunResult:
        """
        Run an action list for the node that fired it.

        `base_context` is the node's resolution context (data, page, user,
        state...). `aux_context` is layered on top, e.g. `{"event": {...}}`.
        """

        result = ActionRunResult(triggering_node_id=triggering_node_id)
        started = time.monotonic()
        await self._run_list(actions, triggering_node_id, dict(aux_context or {}), dict(base_context or {}), result, 0)
        result.total_duration_seconds = time.monotonic() - started
        return result

    async def _run_list(
        self,
        actions: Optional[Iterable[Mapping[str, Any]]],
        node_id: Optional[str],
        extra: Dict[str, Any],
        base: Dict[str, Any],
        result: ActionRunResult,
        depth: int,
    ) -> None:
        if not actions:
            return
        for action in actions:
            extra = await self._run_one(action, node_id, extra, base, result, depth)

    def _context(self, base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
        return {
            **base,
            "formData": self.runtime.session.form_values(self.runtime.form_scope_id),
            "actionResults": extra.get("actionResults") or {},
            **extra,
        }

    async def _run_one(
        self,
        action: Mapping[str, Any],
        node_id: Optional[str],
        extra: Dict[str, Any],
        base: Dict[str, Any],
        result: ActionRunResult,
        depth: int,
    ) -> Dict[str, Any]:
        action_id = action.get("id")
        action_type = str(action.get("type") or "")
        context = self._context(base, extra)
        params = resolve_data_bindings_in_object(action.get("params") or {}, context)
        params = params if isinstance(params, dict) else {}

        conditions = action.get("conditions") or []
        if conditions and not evaluate_conditions(conditions, action.get("conditionLogic"), context):
            log.debug("Skipping action %s (%s): conditions not met", action_id, action_type)
            self.metrics.record_action(action_type, "skipped")
            result.steps.append(ActionStepResult(action_id, action_type, "skipped", depth=depth))
            return extra

        started = time.monotonic()
        step = ActionStepResult(action_id, action_type, "success", depth=depth)
        result.steps.append(step)
        try:
            delay = to_number(action.get("delayMs") or 0)
            if delay and delay > 0:
                await self._sleep(delay / 1000.0)
            handler = self.handlers.get(action_type)
            if handler is None:
                raise ActionError(f"Unsupported action type '{action_type}'", action_type=action_type)
            log.debug("Running action %s (%s) params=%s", action_id, action_type, redact_payload(params))
            outcome: ActionOutcome = await handler(self.runtime, params, node_id)
        except Exception as exc:  # noqa: BLE001 - a failing action never stops its siblings
            step.status = "error"
            step.error_message = str(exc) or type(exc).__name__
            step.duration_seconds = time.monotonic() - started
            log.exception("Action %s of type %s failed", action_id, action_type)
            self.metrics.record_action(action_type, "error", step.duration_seconds)
            if action.get("onError"):
                await self._run_list(
                    action["onError"], node_id, {**extra, "error": describe_error(exc)}, base, result, depth + 1
                )
            return extra

        step.status = "success" if outcome.successful else "failure"
        step.result = outcome.result_data
        step.duration_seconds = time.monotonic() - started
        self.metrics.record_action(action_type, step.status, step.duration_seconds)

        next_extra = dict(extra)
        if outcome.result_data is not None and action_type in RESULT_ACTION_TYPES:
            key = str(params.get("resultKey") or "lastResult")
            results = {**(extra.get("actionResults") or {}), key: outcome.result_data}
            next_extra["actionResults"] = results
            result.action_results[key] = outcome.result_data

        branch = action.get("onSuccess") if outcome.successful else action.get("onError")
        if branch:
            await self._run_list(branch, node_id, next_extra, base, result, depth + 1)
        return next_extra
