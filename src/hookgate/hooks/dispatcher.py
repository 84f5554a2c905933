"""Event dispatcher: evaluates hooks for one lifecycle event."""

import math
from dataclasses import replace
from typing import Any, Optional

from loguru import logger

from .budget import NO_CROSSINGS, BudgetCrossings, BudgetTracker
from .matcher import matches
from .models import Decision, HookAction, HookDefinition, HookEvent, LifecycleEvent, Outcome
from .registry import HookRegistry
from .templating import build_template_fields, render_message

# Threshold hooks are appended after the event's own hooks, in this order.
_THRESHOLD_ORDER = (
    HookEvent.ON_BUDGET_THRESHOLD,
    HookEvent.ON_BUDGET_EXCEEDED,
    HookEvent.ON_MAX_TURNS,
)


def resolve_decision(fired: list[tuple[HookDefinition, str]]) -> Decision:
    """
    Aggregate matching hooks into one decision by severity.

    - any stop  -> STOPPED with the first stop's message
    - any block -> BLOCKED with the first block's message
    - otherwise WARN if there are warnings, else PROCEED

    Warnings and logs are kept in declared order whatever the outcome, so
    an unrelated warn or log hook can never outvote a block.

    Args:
        fired: Matching hooks with their rendered messages, in evaluation order
    """
    decision = Decision(matched=[hook.name for hook, _ in fired])
    first_stop: Optional[str] = None
    first_block: Optional[str] = None

    for hook, message in fired:
        if hook.require_plan:
            decision.require_plan = True
        if hook.action == HookAction.STOP and first_stop is None:
            first_stop = message
        elif hook.action == HookAction.BLOCK and first_block is None:
            first_block = message
        elif hook.action == HookAction.WARN:
            decision.warnings.append(message)
        elif hook.action == HookAction.LOG:
            decision.logs.append(message)

    if first_stop is not None:
        decision.outcome = Outcome.STOPPED
        decision.message = first_stop
    elif first_block is not None:
        decision.outcome = Outcome.BLOCKED
        decision.message = first_block
    elif decision.warnings:
        decision.outcome = Outcome.WARN
    return decision


def _reading(value: Any, name: str, kind: HookEvent) -> Optional[float]:
    """
    Validate a cost or turn reading supplied by the runtime.

    Readings that are not finite non-negative numbers are logged and
    dropped, so a bad counter never aborts the dispatch.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.error(f"Ignoring non-numeric {name} {value!r} on {kind.value}")
        return None
    if not math.isfinite(value) or value < 0:
        logger.error(f"Ignoring invalid {name} {value!r} on {kind.value}")
        return None
    return float(value)


class HookDispatcher:
    """
    Dispatches lifecycle events of one agent session.

    Owns the session's BudgetTracker. Evaluation is synchronous: each
    event is resolved completely before the runtime continues.

    Budget flow:
    - on_turn_end adds ``payload["turn_cost"]`` and one turn
    - threshold events carry a cumulative ``value`` (cost, or turns for
      on_max_turns)
    - hooks whose thresholds were crossed join that dispatch

    A STOPPED decision is terminal: every later dispatch returns it again
    until reset() starts a new session.
    """

    def __init__(self, registry: HookRegistry, tracker: Optional[BudgetTracker] = None):
        """
        Initialize dispatcher.

        Args:
            registry: Loaded hook registry
            tracker: Budget tracker for this session; a fresh unlimited one if None
        """
        self._registry = registry
        self._tracker = tracker if tracker is not None else BudgetTracker()
        self._stopped: Optional[Decision] = None

    @property
    def registry(self) -> HookRegistry:
        return self._registry

    @property
    def tracker(self) -> BudgetTracker:
        return self._tracker

    @property
    def stopped(self) -> bool:
        """True once a stop hook has ended the session."""
        return self._stopped is not None

    def replace_registry(self, registry: HookRegistry) -> None:
        """Install a rebuilt registry; budget state is kept."""
        self._registry = registry
        logger.info(f"Hook registry replaced: {registry!r}")

    def reset(self) -> None:
        """Start a new session: clear budget state and the stop latch."""
        self._tracker.reset()
        self._stopped = None

    def dispatch(self, event: LifecycleEvent) -> Decision:
        """
        Evaluate every hook that applies to an event.

        Args:
            event: Lifecycle event from the runtime

        Returns:
            Aggregated decision for the runtime to honor
        """
        if self._stopped is not None:
            logger.warning(
                f"Dispatch of {event.kind} after session stop refused: {self._stopped.message}"
            )
            return replace(
                self._stopped,
                warnings=list(self._stopped.warnings),
                logs=list(self._stopped.logs),
                matched=list(self._stopped.matched),
            )

        kind = HookEvent.parse(event.kind)
        if kind is None:
            logger.debug(f"No hooks for unknown event kind {event.kind!r}")
            return Decision()

        crossings = self._advance_budget(kind, event)

        candidates: list[tuple[HookDefinition, Optional[BudgetCrossings]]] = []
        if not kind.is_threshold:
            candidates.extend((hook, None) for hook in self._registry.lookup(kind))
        if crossings:
            for threshold_kind in _THRESHOLD_ORDER:
                candidates.extend(
                    (hook, crossings) for hook in self._registry.lookup(threshold_kind)
                )

        fired: list[tuple[HookDefinition, str]] = []
        for hook, hook_crossings in candidates:
            try:
                if not matches(hook, event, hook_crossings, self._tracker.max_turns):
                    continue
                fired.append((hook, self._render(hook, event)))
            except Exception as e:
                logger.error(f"Hook '{hook.name}' failed to evaluate on {kind.value}: {e}")
                # A broken hook is a non-match; keep evaluating the rest

        decision = resolve_decision(fired)

        if decision.stopped:
            self._stopped = decision
            logger.warning(f"Session stopped by hook on {kind.value}: {decision.message}")
        elif decision.blocked:
            logger.warning(
                f"Hook blocked {event.tool_name or kind.value}: {decision.message}"
            )
        else:
            logger.debug(
                f"Dispatched {kind.value} tool={event.tool_name} "
                f"matched={decision.matched} outcome={decision.outcome.value}"
            )
        return decision

    def _advance_budget(self, kind: HookEvent, event: LifecycleEvent) -> BudgetCrossings:
        registry = self._registry
        fractions = registry.budget_fractions()
        turn_limits = registry.turn_limits()
        payload = event.payload or {}

        if kind == HookEvent.ON_TURN_END:
            turn_cost = _reading(payload.get("turn_cost"), "turn_cost", kind)
            return self._tracker.update(
                cost_delta=turn_cost or 0.0,
                turn_delta=1,
                fractions=fractions,
                turn_limits=turn_limits,
            )

        if kind in (HookEvent.ON_BUDGET_THRESHOLD, HookEvent.ON_BUDGET_EXCEEDED):
            return self._tracker.observe(
                accumulated_cost=_reading(event.value, "value", kind),
                fractions=fractions,
                turn_limits=turn_limits,
            )

        if kind == HookEvent.ON_MAX_TURNS:
            turns = _reading(event.value, "value", kind)
            return self._tracker.observe(
                turns_elapsed=int(turns) if turns is not None else None,
                fractions=fractions,
                turn_limits=turn_limits,
            )

        return NO_CROSSINGS

    def _render(self, hook: HookDefinition, event: LifecycleEvent) -> str:
        threshold = hook.threshold
        if hook.event == HookEvent.ON_MAX_TURNS and threshold is None:
            threshold = self._tracker.max_turns
        fields = build_template_fields(
            event,
            self._tracker.state,
            budget_limit=self._tracker.budget_limit,
            max_turns=self._tracker.max_turns,
            threshold=threshold,
        )
        return render_message(hook.message or hook.name, fields)
