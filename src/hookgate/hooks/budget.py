"""Per-session budget and turn tracking for threshold hooks."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from loguru import logger


@dataclass
class BudgetState:
    """
    Counters for one agent session.

    accumulated_cost and turns_elapsed never decrease. The fired sets make
    every threshold notify at most once per session.
    """

    accumulated_cost: float = 0.0
    turns_elapsed: int = 0
    last_turn_cost: float = 0.0
    fired_fractions: set[float] = field(default_factory=set)
    fired_turn_limits: set[int] = field(default_factory=set)
    budget_exceeded_fired: bool = False

    def reset(self) -> None:
        """Clear all counters for a new session."""
        self.accumulated_cost = 0.0
        self.turns_elapsed = 0
        self.last_turn_cost = 0.0
        self.fired_fractions.clear()
        self.fired_turn_limits.clear()
        self.budget_exceeded_fired = False


@dataclass(frozen=True)
class BudgetCrossings:
    """Thresholds newly crossed by one tracker update."""

    fractions: frozenset[float] = frozenset()
    budget_exceeded: bool = False
    turn_limits: frozenset[int] = frozenset()

    def __bool__(self) -> bool:
        return bool(self.fractions or self.budget_exceeded or self.turn_limits)


NO_CROSSINGS = BudgetCrossings()

# Absorbs float drift from summing many small cost deltas.
_EPSILON = 1e-9


class BudgetTracker:
    """
    Owns a session's BudgetState and reports threshold crossings.

    Crossing semantics:
    - a fraction f crosses the first time accumulated_cost / budget_limit >= f
    - budget_exceeded crosses once when accumulated_cost >= budget_limit
    - a turn limit crosses once when turns_elapsed >= limit
    Nothing re-arms until reset(). Without a budget_limit no budget
    threshold ever crosses; without a limit no turn threshold does.
    """

    def __init__(
        self,
        budget_limit: Optional[float] = None,
        max_turns: Optional[int] = None,
        state: Optional[BudgetState] = None,
    ):
        """
        Initialize tracker.

        Args:
            budget_limit: Session budget in USD, None for unlimited
            max_turns: Default turn limit for on_max_turns hooks without a threshold
            state: Initial state, for restoring or testing
        """
        if budget_limit is not None and budget_limit <= 0:
            raise ValueError(f"budget_limit must be > 0, got {budget_limit}")
        if max_turns is not None and max_turns <= 0:
            raise ValueError(f"max_turns must be > 0, got {max_turns}")
        self.budget_limit = budget_limit
        self.max_turns = max_turns
        self.state = state if state is not None else BudgetState()

    @property
    def usage_fraction(self) -> Optional[float]:
        """Share of the budget spent so far, None without a limit."""
        if not self.budget_limit:
            return None
        return self.state.accumulated_cost / self.budget_limit

    def update(
        self,
        cost_delta: float = 0.0,
        turn_delta: int = 0,
        fractions: Iterable[float] = (),
        turn_limits: Iterable[int] = (),
    ) -> BudgetCrossings:
        """
        Add spend and turns, then report newly crossed thresholds.

        Args:
            cost_delta: Cost of the work since the last update
            turn_delta: Turns completed since the last update
            fractions: Budget fractions registered by on_budget_threshold hooks
            turn_limits: Turn limits registered by on_max_turns hooks

        Raises:
            ValueError: If a delta is negative
        """
        if cost_delta < 0:
            raise ValueError(f"cost_delta must be >= 0, got {cost_delta}")
        if turn_delta < 0:
            raise ValueError(f"turn_delta must be >= 0, got {turn_delta}")

        self.state.accumulated_cost += cost_delta
        self.state.turns_elapsed += turn_delta
        if turn_delta:
            self.state.last_turn_cost = cost_delta

        return self._collect_crossings(fractions, turn_limits)

    def observe(
        self,
        accumulated_cost: Optional[float] = None,
        turns_elapsed: Optional[int] = None,
        fractions: Iterable[float] = (),
        turn_limits: Iterable[int] = (),
    ) -> BudgetCrossings:
        """
        Apply cumulative readings reported by the runtime.

        Readings below the current counters are ignored so the counters
        stay monotone.
        """
        if accumulated_cost is not None and accumulated_cost > self.state.accumulated_cost:
            self.state.accumulated_cost = float(accumulated_cost)
        if turns_elapsed is not None and turns_elapsed > self.state.turns_elapsed:
            self.state.turns_elapsed = int(turns_elapsed)

        return self._collect_crossings(fractions, turn_limits)

    def _collect_crossings(
        self, fractions: Iterable[float], turn_limits: Iterable[int]
    ) -> BudgetCrossings:
        state = self.state
        crossed_fractions = set()
        budget_exceeded = False

        usage = self.usage_fraction
        if usage is not None:
            for fraction in set(fractions):
                if fraction in state.fired_fractions:
                    continue
                if usage + _EPSILON >= fraction:
                    state.fired_fractions.add(fraction)
                    crossed_fractions.add(fraction)
            if usage + _EPSILON >= 1 and not state.budget_exceeded_fired:
                state.budget_exceeded_fired = True
                budget_exceeded = True

        crossed_limits = set()
        limits = set(turn_limits)
        if self.max_turns is not None:
            limits.add(self.max_turns)
        for limit in limits:
            if limit in state.fired_turn_limits:
                continue
            if state.turns_elapsed >= limit:
                state.fired_turn_limits.add(limit)
                crossed_limits.add(limit)

        crossings = BudgetCrossings(
            fractions=frozenset(crossed_fractions),
            budget_exceeded=budget_exceeded,
            turn_limits=frozenset(crossed_limits),
        )
        if crossings:
            logger.debug(
                f"Budget crossings: fractions={sorted(crossings.fractions)}, "
                f"exceeded={crossings.budget_exceeded}, turn_limits={sorted(crossings.turn_limits)}, "
                f"cost={state.accumulated_cost:.4f}, turns={state.turns_elapsed}"
            )
        return crossings

    def reset(self) -> None:
        """Start a new session."""
        self.state.reset()
