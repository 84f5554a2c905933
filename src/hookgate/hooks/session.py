"""Runtime-facing hook session for one agent run."""

from collections import deque
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger

from ..config import Config
from .budget import BudgetState, BudgetTracker
from .dispatcher import HookDispatcher
from .models import Decision, HookEvent, LifecycleEvent
from .registry import HookRegistry, HookSource


class HookSession:
    """
    Hook evaluation for a single agent session.

    The agent runtime holds one HookSession per session and calls it at
    each lifecycle boundary. Sessions never share state: each one owns its
    registry reference, budget tracker and decision history.

    Usage:
        session = HookSession.from_config(hooks, budget_limit=5.0, max_turns=20)

        decision = session.before_tool_call("Bash", {"command": "rm -rf /"})
        if decision.blocked:
            ...  # abort the tool call
        if decision.stopped:
            ...  # end the session
    """

    def __init__(
        self,
        registry: HookRegistry,
        budget_limit: Optional[float] = None,
        max_turns: Optional[int] = None,
        state: Optional[BudgetState] = None,
        history_size: Optional[int] = None,
    ):
        """
        Initialize session.

        Args:
            registry: Loaded hook registry
            budget_limit: Session budget in USD, None for unlimited
            max_turns: Turn limit used by on_max_turns hooks without a threshold
            state: Initial budget state, for restoring or testing
            history_size: Decisions kept for inspection (Config.DECISION_HISTORY if None)
        """
        tracker = BudgetTracker(budget_limit=budget_limit, max_turns=max_turns, state=state)
        self._dispatcher = HookDispatcher(registry, tracker)
        size = Config.DECISION_HISTORY if history_size is None else history_size
        self._history: deque[Decision] = deque(maxlen=size)

    @classmethod
    def from_config(
        cls,
        hooks: Optional[HookSource],
        budget_limit: Optional[float] = None,
        max_turns: Optional[int] = None,
    ) -> "HookSession":
        """
        Build a session from the hooks mapping.

        Raises:
            HookValidationError: If any hook is invalid
        """
        return cls(HookRegistry.load(hooks), budget_limit=budget_limit, max_turns=max_turns)

    @classmethod
    def from_yaml(
        cls,
        yaml_path: Optional[Union[str, Path]] = None,
        budget_limit: Optional[float] = None,
        max_turns: Optional[int] = None,
    ) -> "HookSession":
        """
        Build a session from a hooks YAML file.

        Args:
            yaml_path: Hooks file, Config.HOOKS_CONFIG_PATH if None
            budget_limit: Session budget, Config.BUDGET_USD if None
            max_turns: Turn limit, Config.MAX_TURNS if None

        Raises:
            FileNotFoundError: If the file doesn't exist
            HookValidationError: If the file or any hook is invalid
        """
        registry = HookRegistry.from_yaml(yaml_path or Config.HOOKS_CONFIG_PATH)
        return cls(
            registry,
            budget_limit=budget_limit if budget_limit is not None else Config.BUDGET_USD,
            max_turns=max_turns if max_turns is not None else Config.MAX_TURNS,
        )

    @property
    def dispatcher(self) -> HookDispatcher:
        return self._dispatcher

    @property
    def budget(self) -> BudgetState:
        """Current budget counters."""
        return self._dispatcher.tracker.state

    @property
    def stopped(self) -> bool:
        return self._dispatcher.stopped

    @property
    def history(self) -> list[Decision]:
        """Most recent decisions, oldest first."""
        return list(self._history)

    def dispatch(self, event: LifecycleEvent) -> Decision:
        """
        Dispatch an event and surface its warnings and logs.

        After a stop the dispatcher replays the stopping decision; its
        messages were already surfaced and are not logged again.
        """
        replayed = self._dispatcher.stopped
        decision = self._dispatcher.dispatch(event)
        self._history.append(decision)
        if replayed:
            return decision
        for message in decision.warnings:
            logger.warning(f"[hook] {message}")
        for message in decision.logs:
            logger.info(f"[hook] {message}")
        return decision

    def before_tool_call(self, tool_name: str, params: Optional[dict[str, Any]] = None) -> Decision:
        """Run pre_tool_use hooks for a tool about to execute."""
        return self.dispatch(
            LifecycleEvent(HookEvent.PRE_TOOL_USE, tool_name=tool_name, payload=dict(params or {}))
        )

    def after_tool_call(
        self,
        tool_name: str,
        params: Optional[dict[str, Any]] = None,
        result: Any = None,
    ) -> Decision:
        """Run post_tool_use hooks for a finished tool call."""
        payload = dict(params or {})
        payload["result"] = result
        return self.dispatch(
            LifecycleEvent(HookEvent.POST_TOOL_USE, tool_name=tool_name, payload=payload)
        )

    def start_turn(self) -> Decision:
        """Run on_turn_start hooks."""
        return self.dispatch(LifecycleEvent(HookEvent.ON_TURN_START))

    def end_turn(self, turn_cost: float = 0.0) -> Decision:
        """
        Run on_turn_end hooks and any budget or turn thresholds this turn crossed.

        Args:
            turn_cost: Cost of the turn that just finished
        """
        return self.dispatch(
            LifecycleEvent(HookEvent.ON_TURN_END, payload={"turn_cost": turn_cost})
        )

    def record_cost(self, accumulated_cost: float) -> Decision:
        """Apply a cumulative cost reading and run crossed budget hooks."""
        return self.dispatch(
            LifecycleEvent(HookEvent.ON_BUDGET_THRESHOLD, value=accumulated_cost)
        )

    def reload(self, hooks: Optional[HookSource]) -> None:
        """
        Replace the rule set wholesale.

        The new registry is fully validated before it is installed, so a
        bad configuration leaves the current rules in place.

        Raises:
            HookValidationError: If any hook is invalid
        """
        self._dispatcher.replace_registry(HookRegistry.load(hooks))

    def new_session(self) -> None:
        """Reset budget state, the stop latch and history for a new session."""
        self._dispatcher.reset()
        self._history.clear()
        logger.info("Hook session reset")
