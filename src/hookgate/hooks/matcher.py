"""Matching of hook definitions against lifecycle events."""

from typing import Any, Optional

from loguru import logger

from .budget import BudgetCrossings
from .models import HookDefinition, HookEvent, LifecycleEvent

# Payload field a pattern reads when the hook names no field, by tool.
TOOL_PATTERN_FIELDS: dict[str, tuple[str, ...]] = {
    "Bash": ("command",),
    "WebFetch": ("url",),
    "WebSearch": ("query",),
    "Read": ("file_path",),
    "Write": ("file_path",),
    "Edit": ("file_path",),
    "MultiEdit": ("file_path",),
    "NotebookEdit": ("notebook_path",),
    "Glob": ("pattern", "path"),
    "Grep": ("pattern", "path"),
}

DEFAULT_PATTERN_FIELDS: tuple[str, ...] = ("command", "url", "file_path", "path", "text")


class PayloadFieldMissing(LookupError):
    """Raised when no payload field is available for a hook's pattern."""


def resolve_pattern_subject(hook: HookDefinition, event: LifecycleEvent) -> str:
    """
    Pick the payload value a hook's pattern is searched in.

    Resolution order: the hook's explicit field, the fields implied by the
    tool, then the generic defaults.

    Raises:
        PayloadFieldMissing: If none of the candidate fields is present
    """
    payload = event.payload or {}
    if hook.field is not None:
        candidates: tuple[str, ...] = (hook.field,)
    else:
        candidates = TOOL_PATTERN_FIELDS.get(event.tool_name or "", ()) + DEFAULT_PATTERN_FIELDS

    for name in candidates:
        value: Any = payload.get(name)
        if value is None:
            continue
        return value if isinstance(value, str) else str(value)

    raise PayloadFieldMissing(
        f"none of {list(dict.fromkeys(candidates))} present in payload for hook '{hook.name}'"
    )


def _threshold_crossed(
    hook: HookDefinition, crossings: BudgetCrossings, max_turns: Optional[int]
) -> bool:
    if hook.event == HookEvent.ON_BUDGET_THRESHOLD:
        return hook.threshold in crossings.fractions
    if hook.event == HookEvent.ON_BUDGET_EXCEEDED:
        return crossings.budget_exceeded
    if hook.event == HookEvent.ON_MAX_TURNS:
        limit = hook.threshold if hook.threshold is not None else max_turns
        return limit is not None and limit in crossings.turn_limits
    return False


def matches(
    hook: HookDefinition,
    event: LifecycleEvent,
    crossings: Optional[BudgetCrossings] = None,
    max_turns: Optional[int] = None,
) -> bool:
    """
    Decide whether a hook applies to an event.

    - Tool filter: a hook with one never matches an event without a tool name.
    - Pattern: regex search in the resolved payload field; a missing field
      is a non-match.
    - Neither: matches every event of its kind.
    - Threshold hooks match only when the tracker reported their crossing.

    Args:
        hook: Definition to evaluate
        event: Event being dispatched
        crossings: Thresholds newly crossed by this dispatch
        max_turns: Session turn limit for on_max_turns hooks without a threshold

    Returns:
        True if the hook fires for this event
    """
    if hook.event.is_threshold:
        if crossings is None:
            return False
        return _threshold_crossed(hook, crossings, max_turns)

    if not hook.matches_tool(event.tool_name):
        return False

    if hook.pattern is None:
        return True

    try:
        subject = resolve_pattern_subject(hook, event)
    except PayloadFieldMissing as e:
        logger.debug(f"Hook '{hook.name}' skipped: {e}")
        return False

    return hook.search(subject)
