"""Hook rule and decision models."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .patterns import PatternError, compile_regex, compile_tool_filter


class HookValidationError(ValueError):
    """
    Raised when a hook definition fails validation.

    Carries the offending configuration key and field so callers can point
    the author at the exact rule.
    """

    def __init__(self, message: str, field: Optional[str] = None, key: Optional[str] = None):
        self.field = field
        self.key = key
        location = ".".join(part for part in (key, field) if part)
        super().__init__(f"{location}: {message}" if location else message)


class HookEvent(str, Enum):
    """Lifecycle events a hook can be registered for."""

    PRE_TOOL_USE = "pre_tool_use"
    POST_TOOL_USE = "post_tool_use"
    ON_TURN_START = "on_turn_start"
    ON_TURN_END = "on_turn_end"
    ON_BUDGET_THRESHOLD = "on_budget_threshold"
    ON_BUDGET_EXCEEDED = "on_budget_exceeded"
    ON_MAX_TURNS = "on_max_turns"

    @property
    def is_threshold(self) -> bool:
        """Threshold events match on budget crossings, not on tool payloads."""
        return self in _THRESHOLD_EVENTS

    @classmethod
    def parse(cls, value: Union["HookEvent", str, None]) -> Optional["HookEvent"]:
        """Return the matching member, or None for unknown tags."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def from_config_key(cls, key: str) -> "HookEvent":
        """
        Resolve a configuration key to an event.

        Keys are an event tag, optionally followed by ``_<suffix>`` so that
        one mapping can hold several hooks for the same event
        (``on_budget_threshold_90``). The longest matching tag wins.

        Raises:
            HookValidationError: If no event tag matches
        """
        event = cls.parse(key)
        if event is not None:
            return event
        candidates = [
            member for member in cls if isinstance(key, str) and key.startswith(member.value + "_")
        ]
        if not candidates:
            raise HookValidationError(f"unknown event {key!r}", field="event", key=str(key))
        return max(candidates, key=lambda member: len(member.value))


_THRESHOLD_EVENTS = frozenset(
    {HookEvent.ON_BUDGET_THRESHOLD, HookEvent.ON_BUDGET_EXCEEDED, HookEvent.ON_MAX_TURNS}
)


class HookAction(str, Enum):
    """Actions a matching hook resolves to, in increasing severity."""

    ALLOW = "allow"
    LOG = "log"
    WARN = "warn"
    BLOCK = "block"
    STOP = "stop"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    HookAction.ALLOW: 0,
    HookAction.LOG: 1,
    HookAction.WARN: 2,
    HookAction.BLOCK: 3,
    HookAction.STOP: 4,
}

# Fields accepted in one hook object of the HookTemplate.hooks shape.
CONFIG_FIELDS = frozenset(
    {
        "event",
        "name",
        "description",
        "tool",
        "pattern",
        "field",
        "action",
        "message",
        "threshold",
        "require_plan",
        "enabled",
    }
)

_FIELD_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class HookDefinition:
    """
    One authored rule, validated on construction.

    Invariants:
    - action is one of the closed HookAction set
    - on_budget_threshold carries a fraction in (0, 1]
    - on_max_turns carries no threshold or a positive integer
    - other events carry no threshold
    - threshold events carry no tool filter or pattern
    - tool filter and pattern regexes compile and are safe to evaluate
    """

    key: str
    event: HookEvent
    action: HookAction
    name: str = ""
    message: str = ""
    description: str = ""
    tool: Optional[Union[str, tuple[str, ...]]] = None
    pattern: Optional[str] = None
    field: Optional[str] = None
    threshold: Optional[Union[int, float]] = None
    require_plan: bool = False
    enabled: bool = True

    def __post_init__(self):
        event = HookEvent.parse(self.event)
        if event is None:
            raise HookValidationError(f"unknown event {self.event!r}", field="event", key=self.key)
        object.__setattr__(self, "event", event)

        try:
            action = HookAction(self.action)
        except ValueError:
            allowed = ", ".join(a.value for a in HookAction)
            raise HookValidationError(
                f"unknown action {self.action!r} (expected one of: {allowed})",
                field="action",
                key=self.key,
            )
        object.__setattr__(self, "action", action)

        if not self.name:
            object.__setattr__(self, "name", self.key)
        if isinstance(self.tool, list):
            object.__setattr__(self, "tool", tuple(self.tool))

        for name in ("name", "message", "description"):
            if not isinstance(getattr(self, name), str):
                raise HookValidationError("must be a string", field=name, key=self.key)
        for name in ("require_plan", "enabled"):
            if not isinstance(getattr(self, name), bool):
                raise HookValidationError("must be a boolean", field=name, key=self.key)

        self._validate_threshold()
        self._compile_matchers()

    def _validate_threshold(self) -> None:
        threshold = self.threshold
        if self.event == HookEvent.ON_BUDGET_THRESHOLD:
            if threshold is None:
                raise HookValidationError(
                    "budget threshold hooks require a threshold fraction",
                    field="threshold",
                    key=self.key,
                )
            if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
                raise HookValidationError(
                    f"threshold must be a number, got {threshold!r}", field="threshold", key=self.key
                )
            if not 0 < threshold <= 1:
                raise HookValidationError(
                    f"threshold must be in (0, 1], got {threshold}", field="threshold", key=self.key
                )
            object.__setattr__(self, "threshold", float(threshold))
        elif self.event == HookEvent.ON_MAX_TURNS:
            if threshold is None:
                return
            if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold <= 0:
                raise HookValidationError(
                    f"turn limit must be a positive integer, got {threshold!r}",
                    field="threshold",
                    key=self.key,
                )
        elif threshold is not None:
            raise HookValidationError(
                f"{self.event.value} hooks do not take a threshold", field="threshold", key=self.key
            )

    def _compile_matchers(self) -> None:
        if self.event.is_threshold:
            for name in ("tool", "pattern", "field"):
                if getattr(self, name) is not None:
                    raise HookValidationError(
                        f"{self.event.value} hooks do not take a {name}", field=name, key=self.key
                    )
            object.__setattr__(self, "_tool_filter", None)
            object.__setattr__(self, "_pattern", None)
            return

        tool_filter = None
        if self.tool is not None:
            if not isinstance(self.tool, (str, tuple)):
                raise HookValidationError(
                    "must be a tool name, regex or list of names", field="tool", key=self.key
                )
            try:
                tool_filter = compile_tool_filter(self.tool)
            except PatternError as e:
                raise HookValidationError(str(e), field="tool", key=self.key) from e

        pattern = None
        if self.pattern is not None:
            if not isinstance(self.pattern, str) or not self.pattern:
                raise HookValidationError("must be a non-empty string", field="pattern", key=self.key)
            try:
                pattern = compile_regex(self.pattern)
            except PatternError as e:
                raise HookValidationError(str(e), field="pattern", key=self.key) from e

        if self.field is not None:
            if not isinstance(self.field, str) or not _FIELD_NAME.fullmatch(self.field):
                raise HookValidationError(
                    f"must be a payload field name, got {self.field!r}", field="field", key=self.key
                )
            if self.pattern is None:
                raise HookValidationError(
                    "field is only meaningful together with a pattern", field="field", key=self.key
                )

        object.__setattr__(self, "_tool_filter", tool_filter)
        object.__setattr__(self, "_pattern", pattern)

    @property
    def is_global(self) -> bool:
        """True for hooks without tool filter or pattern."""
        return self.tool is None and self.pattern is None

    def matches_tool(self, tool_name: Optional[str]) -> bool:
        """Apply the tool filter; a filtered hook never matches a tool-less event."""
        tool_filter = self._tool_filter
        if tool_filter is None:
            return True
        if not tool_name:
            return False
        return tool_filter(tool_name)

    def search(self, text: str) -> bool:
        """Substring regex search of the pattern against a payload value."""
        if self._pattern is None:
            return True
        return self._pattern.search(text) is not None

    @classmethod
    def from_config(cls, key: str, data: Mapping[str, Any]) -> "HookDefinition":
        """
        Build a definition from one hook object of the hooks mapping.

        Args:
            key: Configuration key (event tag, optionally suffixed)
            data: Hook object with tool/pattern/action/message/threshold fields

        Raises:
            HookValidationError: If the object is malformed
        """
        if not isinstance(data, Mapping):
            raise HookValidationError(
                f"hook must be a mapping, got {type(data).__name__}", key=str(key)
            )

        unknown = set(data) - CONFIG_FIELDS
        if unknown:
            raise HookValidationError(
                f"unknown field(s): {', '.join(sorted(unknown))}", key=str(key)
            )

        if "event" in data:
            event = HookEvent.parse(data["event"])
            if event is None:
                raise HookValidationError(
                    f"unknown event {data['event']!r}", field="event", key=str(key)
                )
        else:
            event = HookEvent.from_config_key(key)

        if "action" not in data:
            raise HookValidationError("action is required", field="action", key=str(key))

        return cls(
            key=str(key),
            event=event,
            action=data["action"],
            name=data.get("name") or "",
            message=data.get("message", ""),
            description=data.get("description", ""),
            tool=data.get("tool"),
            pattern=data.get("pattern"),
            field=data.get("field"),
            threshold=data.get("threshold"),
            require_plan=data.get("require_plan", False),
            enabled=data.get("enabled", True),
        )

    def to_config(self) -> dict[str, Any]:
        """Serialize back to a hook object; the inverse of from_config."""
        data: dict[str, Any] = {"name": self.name}
        try:
            implied = HookEvent.from_config_key(self.key)
        except HookValidationError:
            implied = None
        if implied != self.event:
            data["event"] = self.event.value
        if self.description:
            data["description"] = self.description
        if self.tool is not None:
            data["tool"] = list(self.tool) if isinstance(self.tool, tuple) else self.tool
        if self.pattern is not None:
            data["pattern"] = self.pattern
        if self.field is not None:
            data["field"] = self.field
        if self.threshold is not None:
            data["threshold"] = self.threshold
        data["action"] = self.action.value
        data["message"] = self.message
        if self.require_plan:
            data["require_plan"] = True
        data["enabled"] = self.enabled
        return data


@dataclass
class LifecycleEvent:
    """
    One point in the agent's execution, emitted by the runtime.

    Payload keys used by the engine:
    - tool input fields (``command``, ``url``, ``file_path``...) for tool events
    - ``result`` for post_tool_use
    - ``turn_cost`` for on_turn_end

    ``value`` is the cumulative reading for threshold events: accumulated
    cost for budget events, turns elapsed for on_max_turns.
    """

    kind: Union[HookEvent, str]
    tool_name: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict)
    value: Optional[float] = None


class Outcome(str, Enum):
    """Aggregate outcome of one dispatch."""

    PROCEED = "proceed"
    WARN = "warn"
    BLOCKED = "blocked"
    STOPPED = "stopped"


@dataclass
class Decision:
    """
    Result of evaluating all hooks for one event.

    The runtime must abort the tool call on BLOCKED and end the session on
    STOPPED. PROCEED and WARN let execution continue; warnings are surfaced
    to the operator, logs are informational.
    """

    outcome: Outcome = Outcome.PROCEED
    message: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    matched: list[str] = field(default_factory=list)
    require_plan: bool = False

    @property
    def proceeds(self) -> bool:
        return self.outcome in (Outcome.PROCEED, Outcome.WARN)

    @property
    def blocked(self) -> bool:
        return self.outcome == Outcome.BLOCKED

    @property
    def stopped(self) -> bool:
        return self.outcome == Outcome.STOPPED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "outcome": self.outcome.value,
            "message": self.message,
            "warnings": list(self.warnings),
            "logs": list(self.logs),
            "matched": list(self.matched),
            "require_plan": self.require_plan,
        }

    def __str__(self) -> str:
        if self.message:
            return f"Decision({self.outcome.value}): {self.message}"
        return f"Decision({self.outcome.value})"
