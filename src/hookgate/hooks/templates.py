"""Built-in hook templates."""

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .registry import HookRegistry


@dataclass(frozen=True)
class HookTemplate:
    """A named, ready-made hooks mapping."""

    name: str
    description: str
    category: str  # "safety", "budget", "logging", "workflow"
    hooks: Mapping[str, Any] = field(default_factory=dict)

    def build_registry(self) -> HookRegistry:
        """Load this template's hooks on their own."""
        return HookRegistry.load(copy.deepcopy(dict(self.hooks)))


HOOK_TEMPLATES: tuple[HookTemplate, ...] = (
    HookTemplate(
        name="Block Dangerous Bash Commands",
        description="Prevent execution of potentially dangerous bash commands (rm, dd, format)",
        category="safety",
        hooks={
            "pre_tool_use": {
                "name": "Block Dangerous Bash Commands",
                "tool": "Bash",
                "pattern": "^(rm|dd|mkfs|format)",
                "action": "block",
                "message": "Dangerous bash command blocked for safety",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Warn on File Deletions",
        description="Show warning before deleting files",
        category="safety",
        hooks={
            "pre_tool_use": {
                "name": "Warn on File Deletions",
                "tool": "Bash",
                "pattern": "rm -rf",
                "action": "warn",
                "message": "About to delete files recursively",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Budget Alert at 80%",
        description="Warn when reaching 80% of budget, stop at 100%",
        category="budget",
        hooks={
            "on_budget_threshold": {
                "name": "Budget Alert at 80%",
                "threshold": 0.8,
                "action": "warn",
                "message": "Budget 80% consumed",
                "enabled": True,
            },
            "on_budget_exceeded": {
                "name": "Budget Limit Reached",
                "action": "stop",
                "message": "Budget limit reached",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Log All Tool Usage",
        description="Log every tool execution for debugging",
        category="logging",
        hooks={
            "pre_tool_use": {
                "name": "Pre-Tool Log",
                "action": "log",
                "message": "Tool executed: {{tool}}",
                "enabled": True,
            },
            "post_tool_use": {
                "name": "Post-Tool Log",
                "action": "log",
                "message": "Tool completed: {{tool}}",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Require Approval for Web Access",
        description="Ask for permission before fetching web content",
        category="safety",
        hooks={
            "pre_tool_use": {
                "name": "Require Approval for Web Access",
                "tool": "WebFetch",
                "action": "warn",
                "message": "About to fetch: {{url}}",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Plan Before Execute",
        description="Require planning phase before any file operations",
        category="workflow",
        hooks={
            "pre_tool_use": {
                "name": "Plan Before Execute",
                "tool": "(Write|Edit|Bash)",
                "action": "warn",
                "message": "About to modify files/execute commands",
                "require_plan": True,
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Stop on Turn Limit",
        description="Automatically stop when reaching max turns",
        category="workflow",
        hooks={
            "on_turn_end": {
                "name": "Turn End Log",
                "action": "log",
                "message": "Turn {{turn_number}} completed",
                "enabled": True,
            },
            "on_max_turns": {
                "name": "Stop on Max Turns",
                "action": "stop",
                "message": "Maximum turns reached",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Block System File Access",
        description="Prevent reading/writing system configuration files",
        category="safety",
        hooks={
            "pre_tool_use": {
                "name": "Block System File Access",
                "tool": "(Read|Write|Edit)",
                "pattern": "(/etc/|/sys/|/proc/|/dev/)",
                "action": "block",
                "message": "System file access blocked",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Verbose Debugging",
        description="Log detailed information about every turn and tool use",
        category="logging",
        hooks={
            "on_turn_start": {
                "name": "Turn Start Log",
                "action": "log",
                "message": "Starting turn {{turn_number}}",
                "enabled": True,
            },
            "pre_tool_use": {
                "name": "Pre-Tool Verbose Log",
                "action": "log",
                "message": "Calling {{tool}} with params: {{params}}",
                "enabled": True,
            },
            "post_tool_use": {
                "name": "Post-Tool Verbose Log",
                "action": "log",
                "message": "{{tool}} returned: {{result}}",
                "enabled": True,
            },
            "on_turn_end": {
                "name": "Turn End Verbose Log",
                "action": "log",
                "message": "Turn {{turn_number}} complete. Cost: ${{turn_cost}}",
                "enabled": True,
            },
        },
    ),
    HookTemplate(
        name="Cost-Conscious Mode",
        description="Warn on expensive operations and track spending",
        category="budget",
        hooks={
            "on_turn_start": {
                "name": "Cost Tracking Log",
                "action": "log",
                "message": "Total cost so far: ${{accumulated_cost}}",
                "enabled": True,
            },
            "on_budget_threshold": {
                "name": "Budget 50% Warning",
                "threshold": 0.5,
                "action": "warn",
                "message": "Half of budget consumed",
                "enabled": True,
            },
            "on_budget_threshold_90": {
                "name": "Budget 90% Warning",
                "threshold": 0.9,
                "action": "warn",
                "message": "Approaching budget limit (90%)",
                "enabled": True,
            },
        },
    ),
)


def get_template(name: str) -> Optional[HookTemplate]:
    """Look up a built-in template by name."""
    for template in HOOK_TEMPLATES:
        if template.name == name:
            return template
    return None


def apply_template(
    current: Optional[Mapping[str, Any]],
    template: HookTemplate,
    replace: bool = False,
) -> dict[str, Any]:
    """
    Combine a template with an existing hooks mapping.

    Merging overwrites keys the template defines and keeps the rest;
    replacing discards the current hooks. Neither input is mutated.

    Returns:
        New hooks mapping, ready for HookRegistry.load()
    """
    hooks = {} if replace or current is None else copy.deepcopy(dict(current))
    hooks.update(copy.deepcopy(dict(template.hooks)))
    return hooks
