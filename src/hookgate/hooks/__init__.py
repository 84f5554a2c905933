"""Hook evaluation engine for agent tool-use lifecycles.

Hooks are declarative rules (event, tool filter, pattern, threshold,
action, message) evaluated at each lifecycle boundary of an agent run.
The engine decides whether the run proceeds, is blocked, or is stopped.

Key components:
- HookRegistry: Validated, immutable rule set loaded from the hooks mapping
- HookDispatcher: Evaluates one event and resolves the decision by severity
- BudgetTracker: Per-session cost and turn counters for threshold hooks
- HookSession: Runtime-facing wrapper, one per agent session

Usage:
    session = HookSession.from_config(
        {
            "pre_tool_use": {
                "tool": "Bash",
                "pattern": "^(rm|dd|mkfs|format)",
                "action": "block",
                "message": "Dangerous bash command blocked for safety",
            }
        },
        budget_limit=5.0,
    )

    # Before tool call
    decision = session.before_tool_call("Bash", {"command": "rm -rf /"})
    if decision.blocked:
        raise ToolBlocked(decision.message)

    # After each turn
    decision = session.end_turn(turn_cost=0.12)
    if decision.stopped:
        ...  # terminate the session
"""

from .budget import BudgetCrossings, BudgetState, BudgetTracker
from .dispatcher import HookDispatcher, resolve_decision
from .matcher import matches
from .models import (
    Decision,
    HookAction,
    HookDefinition,
    HookEvent,
    HookValidationError,
    LifecycleEvent,
    Outcome,
)
from .registry import HookRegistry
from .session import HookSession
from .templates import HOOK_TEMPLATES, HookTemplate, apply_template, get_template
from .templating import TEMPLATE_FIELDS, build_template_fields, render_message

__all__ = [
    # Session
    "HookSession",
    # Engine
    "HookRegistry",
    "HookDispatcher",
    "BudgetTracker",
    "resolve_decision",
    "matches",
    # Models
    "BudgetCrossings",
    "BudgetState",
    "Decision",
    "HookAction",
    "HookDefinition",
    "HookEvent",
    "HookValidationError",
    "LifecycleEvent",
    "Outcome",
    # Messages
    "TEMPLATE_FIELDS",
    "build_template_fields",
    "render_message",
    # Templates
    "HOOK_TEMPLATES",
    "HookTemplate",
    "apply_template",
    "get_template",
]
