"""Tests for hook definition validation and decision models."""

import pytest

from hookgate.hooks import (
    Decision,
    HookAction,
    HookDefinition,
    HookEvent,
    HookValidationError,
    Outcome,
)


class TestHookEvent:
    """Tests for HookEvent parsing."""

    def test_parse_known_tag(self):
        """Known tags parse to members."""
        assert HookEvent.parse("pre_tool_use") is HookEvent.PRE_TOOL_USE
        assert HookEvent.parse(HookEvent.ON_MAX_TURNS) is HookEvent.ON_MAX_TURNS

    def test_parse_unknown_tag_returns_none(self):
        """Unknown tags are not an error at parse time."""
        assert HookEvent.parse("on_session_start") is None
        assert HookEvent.parse(None) is None

    def test_config_key_with_suffix(self):
        """Suffixed keys resolve to their event."""
        assert HookEvent.from_config_key("on_budget_threshold_90") is HookEvent.ON_BUDGET_THRESHOLD
        assert HookEvent.from_config_key("pre_tool_use_audit") is HookEvent.PRE_TOOL_USE

    def test_config_key_unknown(self):
        """Unknown keys fail validation naming the event field."""
        with pytest.raises(HookValidationError) as exc_info:
            HookEvent.from_config_key("before_everything")
        assert exc_info.value.field == "event"

    def test_threshold_events(self):
        """Only budget and turn events are threshold events."""
        assert HookEvent.ON_BUDGET_THRESHOLD.is_threshold
        assert HookEvent.ON_BUDGET_EXCEEDED.is_threshold
        assert HookEvent.ON_MAX_TURNS.is_threshold
        assert not HookEvent.PRE_TOOL_USE.is_threshold
        assert not HookEvent.ON_TURN_END.is_threshold


class TestHookAction:
    """Tests for action severity ordering."""

    def test_severity_order(self):
        """stop > block > warn > log > allow."""
        ordered = sorted(HookAction, key=lambda action: action.severity)
        assert ordered == [
            HookAction.ALLOW,
            HookAction.LOG,
            HookAction.WARN,
            HookAction.BLOCK,
            HookAction.STOP,
        ]


class TestHookDefinitionValidation:
    """Tests for HookDefinition.from_config validation."""

    def test_minimal_hook(self):
        """A hook needs only an action; name defaults to its key."""
        hook = HookDefinition.from_config("pre_tool_use", {"action": "log"})
        assert hook.event is HookEvent.PRE_TOOL_USE
        assert hook.action is HookAction.LOG
        assert hook.name == "pre_tool_use"
        assert hook.enabled is True
        assert hook.is_global

    def test_missing_action(self):
        """Action is required."""
        with pytest.raises(HookValidationError) as exc_info:
            HookDefinition.from_config("pre_tool_use", {"message": "hi"})
        assert exc_info.value.field == "action"

    def test_unknown_action(self):
        """Actions outside the closed set are rejected."""
        with pytest.raises(HookValidationError, match="unknown action 'deny'") as exc_info:
            HookDefinition.from_config("pre_tool_use", {"action": "deny"})
        assert exc_info.value.field == "action"
        assert exc_info.value.key == "pre_tool_use"

    def test_unknown_field(self):
        """Typos in field names are rejected instead of ignored."""
        with pytest.raises(HookValidationError, match="unknown field"):
            HookDefinition.from_config("pre_tool_use", {"action": "log", "patern": "rm"})

    def test_threshold_above_one_rejected(self):
        """Budget fractions must be within (0, 1]."""
        with pytest.raises(HookValidationError) as exc_info:
            HookDefinition.from_config(
                "on_budget_threshold", {"action": "warn", "threshold": 1.5}
            )
        assert exc_info.value.field == "threshold"

    @pytest.mark.parametrize("threshold", [0, -0.2, "0.5", True])
    def test_invalid_fractions_rejected(self, threshold):
        """Zero, negatives, strings and booleans are not fractions."""
        with pytest.raises(HookValidationError):
            HookDefinition.from_config(
                "on_budget_threshold", {"action": "warn", "threshold": threshold}
            )

    def test_fraction_of_one_accepted(self):
        """1 is the upper bound and is accepted."""
        hook = HookDefinition.from_config("on_budget_threshold", {"action": "warn", "threshold": 1})
        assert hook.threshold == 1.0

    def test_budget_threshold_requires_threshold(self):
        """A budget threshold hook without a fraction can never fire."""
        with pytest.raises(HookValidationError, match="require a threshold"):
            HookDefinition.from_config("on_budget_threshold", {"action": "warn"})

    @pytest.mark.parametrize("threshold", [0, -3, 2.5, True])
    def test_invalid_turn_limits_rejected(self, threshold):
        """Turn limits must be positive integers."""
        with pytest.raises(HookValidationError, match="positive integer"):
            HookDefinition.from_config("on_max_turns", {"action": "stop", "threshold": threshold})

    def test_turn_limit_optional(self):
        """on_max_turns may rely on the session's turn limit."""
        hook = HookDefinition.from_config("on_max_turns", {"action": "stop"})
        assert hook.threshold is None

    def test_threshold_on_tool_event_rejected(self):
        """Tool events take no threshold."""
        with pytest.raises(HookValidationError, match="do not take a threshold"):
            HookDefinition.from_config("pre_tool_use", {"action": "log", "threshold": 0.5})

    def test_pattern_on_threshold_event_rejected(self):
        """Threshold events match on crossings, not payloads."""
        with pytest.raises(HookValidationError) as exc_info:
            HookDefinition.from_config(
                "on_budget_exceeded", {"action": "stop", "pattern": "rm"}
            )
        assert exc_info.value.field == "pattern"

    def test_unparsable_pattern_rejected(self):
        """Malformed regexes fail at load time."""
        with pytest.raises(HookValidationError, match="invalid regular expression") as exc_info:
            HookDefinition.from_config("pre_tool_use", {"action": "block", "pattern": "(rm|dd"})
        assert exc_info.value.field == "pattern"

    def test_unparsable_tool_filter_rejected(self):
        """Malformed tool regexes fail at load time."""
        with pytest.raises(HookValidationError) as exc_info:
            HookDefinition.from_config("pre_tool_use", {"action": "block", "tool": "(Write|Edit"})
        assert exc_info.value.field == "tool"

    @pytest.mark.parametrize(
        "pattern",
        [
            "(a+)+$",
            r"(\w*)*x",
            "(?:ab|c+)+",
            "(x{2,})*",
            "((a+))+$",
            r"^(\w+\s?)+$",
            "^(a|a?)+$",
            "(?P<word>[a-z]+-?){2,}",
        ],
    )
    def test_nested_quantifiers_rejected(self, pattern):
        """Catastrophic backtracking shapes are refused."""
        with pytest.raises(HookValidationError, match="nests quantifiers"):
            HookDefinition.from_config("pre_tool_use", {"action": "block", "pattern": pattern})

    @pytest.mark.parametrize(
        "pattern", ["^(rm|dd|mkfs|format)", r"(\.env)?$", "[(+*]+x", r"\(a+\)+", "(ab){3}"]
    )
    def test_safe_groups_accepted(self, pattern):
        """Alternations and repeats that cannot overlap still load."""
        hook = HookDefinition.from_config("pre_tool_use", {"action": "block", "pattern": pattern})
        assert hook.pattern == pattern

    def test_overlong_pattern_rejected(self):
        """Patterns over the configured length are refused."""
        with pytest.raises(HookValidationError, match="limit is"):
            HookDefinition.from_config("pre_tool_use", {"action": "block", "pattern": "a" * 5000})

    def test_field_requires_pattern(self):
        """An explicit payload field without a pattern has nothing to match."""
        with pytest.raises(HookValidationError) as exc_info:
            HookDefinition.from_config("pre_tool_use", {"action": "block", "field": "command"})
        assert exc_info.value.field == "field"

    def test_enabled_must_be_boolean(self):
        """enabled is a flag, not a truthy string."""
        with pytest.raises(HookValidationError):
            HookDefinition.from_config("pre_tool_use", {"action": "log", "enabled": "no"})

    def test_tool_list_becomes_tuple(self):
        """Tool lists are stored immutably."""
        hook = HookDefinition.from_config(
            "pre_tool_use", {"action": "warn", "tool": ["Write", "Edit"]}
        )
        assert hook.tool == ("Write", "Edit")

    def test_to_config_round_trip(self):
        """to_config is the inverse of from_config."""
        data = {
            "name": "Block System File Access",
            "tool": "(Read|Write|Edit)",
            "pattern": "(/etc/|/sys/)",
            "action": "block",
            "message": "System file access blocked",
            "enabled": True,
        }
        hook = HookDefinition.from_config("pre_tool_use", data)
        assert HookDefinition.from_config("pre_tool_use", hook.to_config()) == hook

    def test_to_config_keeps_explicit_event(self):
        """Keys that do not imply the event keep an explicit event field."""
        hook = HookDefinition.from_config("audit", {"event": "post_tool_use", "action": "log"})
        assert hook.event is HookEvent.POST_TOOL_USE
        assert hook.to_config()["event"] == "post_tool_use"


class TestDecision:
    """Tests for Decision helpers."""

    def test_default_proceeds(self):
        """An empty decision lets the runtime proceed."""
        decision = Decision()
        assert decision.outcome is Outcome.PROCEED
        assert decision.proceeds
        assert not decision.blocked
        assert not decision.stopped

    def test_warn_proceeds(self):
        """Warnings do not change control flow."""
        assert Decision(outcome=Outcome.WARN, warnings=["careful"]).proceeds

    def test_to_dict(self):
        """Serialization uses plain values."""
        decision = Decision(outcome=Outcome.BLOCKED, message="no", matched=["Block"])
        assert decision.to_dict() == {
            "outcome": "blocked",
            "message": "no",
            "warnings": [],
            "logs": [],
            "matched": ["Block"],
            "require_plan": False,
        }
        assert str(decision) == "Decision(blocked): no"
