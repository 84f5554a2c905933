"""Message template substitution for hook messages."""

import json
import re
from typing import Any, Mapping, Optional

from ..config import Config
from .budget import BudgetState
from .models import HookEvent, LifecycleEvent

# The only names a message can reference. Anything else is left verbatim.
TEMPLATE_FIELDS = (
    "tool",
    "url",
    "turn_number",
    "params",
    "result",
    "turn_cost",
    "accumulated_cost",
    "command",
    "file_path",
    "threshold",
    "budget_limit",
    "max_turns",
)

_COST_FIELDS = frozenset({"turn_cost", "accumulated_cost", "budget_limit"})

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def _truncate(text: str, max_len: int) -> str:
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def _format_value(name: str, value: Any) -> str:
    if value is None:
        return ""
    if name in _COST_FIELDS and isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.4f}"
    if isinstance(value, str):
        text = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            text = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            text = str(value)
    else:
        text = str(value)
    return _truncate(text, Config.MESSAGE_VALUE_MAX_CHARS)


def render_message(template: str, fields: Mapping[str, Any]) -> str:
    """
    Substitute ``{{name}}`` placeholders from a fixed set of fields.

    Total: never raises. Known names with no value render as an empty
    string; unknown names are left untouched so authors can spot typos.

    Args:
        template: Message with ``{{placeholder}}`` markers
        fields: Values keyed by names from TEMPLATE_FIELDS

    Returns:
        The rendered message
    """

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in TEMPLATE_FIELDS:
            return match.group(0)
        return _format_value(name, fields.get(name))

    return _PLACEHOLDER.sub(_replace, template or "")


def build_template_fields(
    event: LifecycleEvent,
    state: BudgetState,
    budget_limit: Optional[float] = None,
    max_turns: Optional[int] = None,
    threshold: Optional[float] = None,
) -> dict[str, Any]:
    """
    Extract the template fields for one event.

    Only the named fields are read from the payload. Tool input is exposed
    as a whole through ``params`` and nothing else leaks into messages.
    """
    payload = event.payload or {}
    kind = HookEvent.parse(event.kind)

    turn_number = payload.get("turn_number")
    if turn_number is None:
        if kind == HookEvent.ON_TURN_START:
            turn_number = state.turns_elapsed + 1
        else:
            turn_number = state.turns_elapsed

    turn_cost = payload.get("turn_cost")
    if turn_cost is None:
        turn_cost = state.last_turn_cost

    params = {key: value for key, value in payload.items() if key != "result"}

    return {
        "tool": event.tool_name,
        "url": payload.get("url"),
        "command": payload.get("command"),
        "file_path": payload.get("file_path"),
        "params": params if event.tool_name else None,
        "result": payload.get("result"),
        "turn_number": turn_number,
        "turn_cost": turn_cost,
        "accumulated_cost": state.accumulated_cost,
        "threshold": threshold,
        "budget_limit": budget_limit,
        "max_turns": max_turns,
    }
