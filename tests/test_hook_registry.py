"""Tests for HookRegistry loading, lookup and serialization."""

import pytest
import yaml

from hookgate.hooks import (
    HOOK_TEMPLATES,
    HookDefinition,
    HookDispatcher,
    HookEvent,
    HookRegistry,
    HookValidationError,
    LifecycleEvent,
)


class TestRegistryLoad:
    """Tests for HookRegistry.load()."""

    def test_load_template_shape(self):
        """The hooks mapping loads one hook per key."""
        registry = HookRegistry.load(
            {
                "pre_tool_use": {"name": "Pre", "action": "log", "message": "{{tool}}"},
                "post_tool_use": {"name": "Post", "action": "log", "message": "{{tool}}"},
            }
        )
        assert len(registry) == 2
        assert [hook.name for hook in registry.lookup("pre_tool_use")] == ["Pre"]
        assert [hook.name for hook in registry.lookup(HookEvent.POST_TOOL_USE)] == ["Post"]

    def test_load_list_values_keep_order(self, dangerous_bash_hooks):
        """List values register several hooks in declared order."""
        registry = HookRegistry.load(dangerous_bash_hooks)
        names = [hook.name for hook in registry.lookup(HookEvent.PRE_TOOL_USE)]
        assert names == [
            "Warn on File Deletions",
            "Block Dangerous Bash Commands",
            "Pre-Tool Log",
        ]

    def test_load_suffixed_keys(self, budget_hooks):
        """Suffixed keys add hooks to the same event."""
        registry = HookRegistry.load(budget_hooks)
        assert len(registry.lookup(HookEvent.ON_BUDGET_THRESHOLD)) == 2
        assert registry.budget_fractions() == frozenset({0.5, 0.8})

    def test_load_list_of_definitions(self):
        """An iterable of mappings with an event field is accepted."""
        registry = HookRegistry.load(
            [
                {"event": "on_turn_start", "action": "log", "message": "start"},
                HookDefinition.from_config("on_turn_end", {"action": "log"}),
            ]
        )
        assert len(registry.lookup(HookEvent.ON_TURN_START)) == 1
        assert len(registry.lookup(HookEvent.ON_TURN_END)) == 1

    def test_list_entry_without_event_rejected(self):
        """List entries must say which event they belong to."""
        with pytest.raises(HookValidationError, match="event"):
            HookRegistry.load([{"action": "log"}])

    def test_load_none_is_empty(self):
        """No configuration means no hooks."""
        assert len(HookRegistry.load(None)) == 0

    def test_invalid_hook_fails_whole_load(self):
        """One bad hook rejects the entire rule set."""
        with pytest.raises(HookValidationError) as exc_info:
            HookRegistry.load(
                {
                    "pre_tool_use": {"action": "block", "tool": "Bash", "pattern": "^rm"},
                    "on_budget_threshold": {"action": "warn", "threshold": 1.5},
                }
            )
        assert exc_info.value.field == "threshold"
        assert exc_info.value.key == "on_budget_threshold"

    def test_unknown_event_key_rejected(self):
        """Unknown event tags fail validation."""
        with pytest.raises(HookValidationError, match="unknown event"):
            HookRegistry.load({"on_everything": {"action": "log"}})

    def test_bad_regex_rejected(self):
        """An unparsable pattern prevents the registry from loading."""
        with pytest.raises(HookValidationError, match="invalid regular expression"):
            HookRegistry.load({"pre_tool_use": {"action": "block", "pattern": "[unclosed"}})

    def test_string_source_rejected(self):
        """A bare string is not a rule set."""
        with pytest.raises(HookValidationError):
            HookRegistry.load("pre_tool_use")

    @pytest.mark.parametrize("template", HOOK_TEMPLATES, ids=lambda t: t.name)
    def test_builtin_templates_load(self, template):
        """Every built-in template is a valid rule set."""
        registry = template.build_registry()
        assert len(registry) == len(template.hooks)


class TestRegistryLookup:
    """Tests for lookup() and derived views."""

    def test_lookup_unregistered_event_is_empty(self):
        """Events without hooks yield an empty sequence."""
        registry = HookRegistry.load({"pre_tool_use": {"action": "log"}})
        assert registry.lookup(HookEvent.ON_TURN_END) == ()

    def test_lookup_unknown_kind_is_empty(self):
        """Unknown kinds never raise."""
        registry = HookRegistry.load({"pre_tool_use": {"action": "log"}})
        assert registry.lookup("on_reboot") == ()

    def test_disabled_hooks_not_looked_up(self):
        """Disabled hooks stay in the definitions but never fire."""
        registry = HookRegistry.load(
            {
                "pre_tool_use": [
                    {"name": "Off", "action": "block", "enabled": False},
                    {"name": "On", "action": "log"},
                ]
            }
        )
        assert [hook.name for hook in registry.lookup(HookEvent.PRE_TOOL_USE)] == ["On"]
        assert [hook.name for hook in registry.definitions] == ["Off", "On"]

    def test_turn_limits(self):
        """Only explicit turn limits are reported."""
        registry = HookRegistry.load(
            {
                "on_max_turns": {"action": "stop"},
                "on_max_turns_soft": {"action": "warn", "threshold": 15},
            }
        )
        assert registry.turn_limits() == frozenset({15})


class TestRegistryYaml:
    """Tests for YAML loading and dumping."""

    def test_from_yaml_with_hooks_key(self, write_yaml, dangerous_bash_hooks):
        """A top-level hooks key is unwrapped."""
        path = write_yaml("hooks.yaml", {"hooks": dangerous_bash_hooks})
        registry = HookRegistry.from_yaml(path)
        assert len(registry.lookup(HookEvent.PRE_TOOL_USE)) == 3

    def test_from_yaml_bare_mapping(self, write_yaml, budget_hooks):
        """The hooks mapping may be the whole document."""
        registry = HookRegistry.from_yaml(write_yaml("hooks.yaml", budget_hooks))
        assert len(registry) == 3

    def test_from_yaml_missing_file(self, tmp_path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            HookRegistry.from_yaml(tmp_path / "absent.yaml")

    def test_from_yaml_empty_file(self, tmp_path):
        """An empty file loads no hooks."""
        path = tmp_path / "hooks.yaml"
        path.write_text("", encoding="utf-8")
        assert len(HookRegistry.from_yaml(path)) == 0

    def test_from_yaml_malformed(self, tmp_path):
        """YAML syntax errors surface as validation errors."""
        path = tmp_path / "hooks.yaml"
        path.write_text("pre_tool_use: {action: [block\n", encoding="utf-8")
        with pytest.raises(HookValidationError, match="failed to parse"):
            HookRegistry.from_yaml(path)

    def test_from_yaml_scalar_document(self, tmp_path):
        """A scalar document is not a rule set."""
        path = tmp_path / "hooks.yaml"
        path.write_text("just a string\n", encoding="utf-8")
        with pytest.raises(HookValidationError, match="expected mapping"):
            HookRegistry.from_yaml(path)

    def test_shipped_config_loads(self):
        """The example configuration in config/ is valid."""
        from pathlib import Path

        path = Path(__file__).resolve().parent.parent / "config" / "hooks.yaml"
        registry = HookRegistry.from_yaml(path)
        assert len(registry.lookup(HookEvent.PRE_TOOL_USE)) == 3


class TestRegistryRoundTrip:
    """Serializing and reloading preserves matching behavior."""

    SAMPLE_EVENTS = [
        LifecycleEvent(HookEvent.PRE_TOOL_USE, "Bash", {"command": "rm -rf /"}),
        LifecycleEvent(HookEvent.PRE_TOOL_USE, "Bash", {"command": "ls -la"}),
        LifecycleEvent(HookEvent.PRE_TOOL_USE, "Read", {"file_path": "/etc/passwd"}),
        LifecycleEvent(HookEvent.PRE_TOOL_USE, "Write", {"file_path": "./notes.md"}),
        LifecycleEvent(HookEvent.PRE_TOOL_USE, "WebFetch", {"url": "https://example.com"}),
        LifecycleEvent(HookEvent.POST_TOOL_USE, "Edit", {"file_path": "a.py", "result": "ok"}),
        LifecycleEvent(HookEvent.ON_TURN_START),
        LifecycleEvent(HookEvent.ON_TURN_END, payload={"turn_cost": 0.25}),
    ]

    def _decisions(self, registry):
        dispatcher = HookDispatcher(registry)
        return [dispatcher.dispatch(event).to_dict() for event in self.SAMPLE_EVENTS]

    def test_all_templates_round_trip(self):
        """Dumping and reloading every template matches identically."""
        hooks = {}
        for template in HOOK_TEMPLATES:
            for key, hook in template.hooks.items():
                hooks.setdefault(key, []).append(dict(hook))

        original = HookRegistry.load(hooks)
        reloaded = HookRegistry.load(yaml.safe_load(original.dump())["hooks"])

        assert reloaded.definitions == original.definitions
        assert self._decisions(reloaded) == self._decisions(original)

    def test_to_config_single_and_list(self, dangerous_bash_hooks, budget_hooks):
        """Keys with one hook serialize as objects, several as lists."""
        config = HookRegistry.load({**dangerous_bash_hooks, **budget_hooks}).to_config()
        assert isinstance(config["pre_tool_use"], list)
        assert isinstance(config["on_budget_exceeded"], dict)
        assert config["on_budget_threshold_80"]["threshold"] == 0.8
