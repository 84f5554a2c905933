"""Pytest fixtures for the hookgate test suite."""

from pathlib import Path

import pytest
import yaml

from hookgate.hooks import BudgetTracker, HookDispatcher, HookRegistry


# ============================================================================
# RULE FIXTURES
# ============================================================================


@pytest.fixture
def dangerous_bash_hooks():
    """Block and warn rules that both match a recursive rm."""
    return {
        "pre_tool_use": [
            {
                "name": "Warn on File Deletions",
                "tool": "Bash",
                "pattern": "rm -rf",
                "action": "warn",
                "message": "About to delete files recursively",
            },
            {
                "name": "Block Dangerous Bash Commands",
                "tool": "Bash",
                "pattern": "^(rm|dd|mkfs|format)",
                "action": "block",
                "message": "Dangerous bash command blocked for safety",
            },
            {
                "name": "Pre-Tool Log",
                "action": "log",
                "message": "Tool executed: {{tool}}",
            },
        ]
    }


@pytest.fixture
def budget_hooks():
    """Threshold rules at 50%, 80% and 100% of budget."""
    return {
        "on_budget_threshold": {
            "name": "Budget 50% Warning",
            "threshold": 0.5,
            "action": "warn",
            "message": "Half of budget consumed",
        },
        "on_budget_threshold_80": {
            "name": "Budget Alert at 80%",
            "threshold": 0.8,
            "action": "warn",
            "message": "Budget 80% consumed (${{accumulated_cost}})",
        },
        "on_budget_exceeded": {
            "name": "Budget Limit Reached",
            "action": "stop",
            "message": "Budget limit reached",
        },
    }


@pytest.fixture
def budget_dispatcher(budget_hooks):
    """Dispatcher over budget_hooks with a $10 budget."""
    return HookDispatcher(HookRegistry.load(budget_hooks), BudgetTracker(budget_limit=10.0))


# ============================================================================
# FILE FIXTURES
# ============================================================================


@pytest.fixture
def write_yaml(tmp_path):
    """Write a Python object as YAML under tmp_path and return the path."""

    def _write(name: str, data) -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write
