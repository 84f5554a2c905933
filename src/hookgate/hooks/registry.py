"""Hook registry loaded from the HookTemplate.hooks configuration shape."""

from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import yaml
from loguru import logger

from .models import HookDefinition, HookEvent, HookValidationError

HookSource = Union[Mapping[str, Any], Iterable[Union[HookDefinition, Mapping[str, Any]]]]


class HookRegistry:
    """
    Immutable mapping from lifecycle event to ordered hook definitions.

    Built once per configuration; a configuration change builds a new
    registry instead of mutating this one.

    Features:
    - Accepts the ``{event_key: hook | [hooks]}`` mapping used by hook templates
    - Fail-closed loading: one invalid hook rejects the whole set
    - Declared order is kept per event
    - Disabled hooks are kept for serialization but never looked up
    """

    def __init__(self, definitions: Iterable[HookDefinition] = ()):
        """
        Initialize registry from already-validated definitions.

        Args:
            definitions: Hook definitions in declared order
        """
        self._definitions: tuple[HookDefinition, ...] = tuple(definitions)
        by_event: dict[HookEvent, list[HookDefinition]] = {}
        for definition in self._definitions:
            if not isinstance(definition, HookDefinition):
                raise HookValidationError(
                    f"expected HookDefinition, got {type(definition).__name__}"
                )
            if definition.enabled:
                by_event.setdefault(definition.event, []).append(definition)
        self._by_event: dict[HookEvent, tuple[HookDefinition, ...]] = {
            event: tuple(hooks) for event, hooks in by_event.items()
        }

    @classmethod
    def load(cls, definitions: Optional[HookSource]) -> "HookRegistry":
        """
        Validate and load hook definitions.

        Args:
            definitions: Either the hooks mapping (``{"pre_tool_use": {...}}``,
                values may be a single hook or a list) or an iterable of
                HookDefinition objects / mappings with an ``event`` key.

        Returns:
            Loaded registry

        Raises:
            HookValidationError: If any definition is invalid
        """
        if definitions is None:
            return cls()

        loaded: list[HookDefinition] = []
        if isinstance(definitions, Mapping):
            for key, value in definitions.items():
                if not isinstance(key, str):
                    raise HookValidationError(f"event key must be a string, got {key!r}")
                entries = value if isinstance(value, list) else [value]
                for entry in entries:
                    loaded.append(HookDefinition.from_config(key, entry))
        elif isinstance(definitions, (str, bytes)):
            raise HookValidationError("hook definitions must be a mapping or a list")
        else:
            for index, entry in enumerate(definitions):
                if isinstance(entry, HookDefinition):
                    loaded.append(entry)
                    continue
                if not isinstance(entry, Mapping) or "event" not in entry:
                    raise HookValidationError(
                        "list entries must be mappings with an 'event' field",
                        field="event",
                        key=f"[{index}]",
                    )
                loaded.append(HookDefinition.from_config(str(entry["event"]), entry))

        registry = cls(loaded)
        logger.info(
            f"Loaded {len(registry)} hook(s) across {len(registry._by_event)} event(s)"
        )
        return registry

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "HookRegistry":
        """
        Load registry from a YAML file.

        The document is either the hooks mapping itself or a mapping with
        a top-level ``hooks`` key.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            HookValidationError: If YAML is malformed or a hook is invalid
        """
        yaml_file = Path(yaml_path)
        if not yaml_file.exists():
            raise FileNotFoundError(f"Hooks YAML not found: {yaml_path}")

        try:
            with open(yaml_file, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise HookValidationError(f"failed to parse {yaml_path}: {e}") from e

        if data is None:
            logger.debug(f"Hooks file {yaml_path} is empty, no hooks loaded")
            return cls()

        if isinstance(data, Mapping) and "hooks" in data:
            data = data["hooks"] or {}

        if not isinstance(data, (Mapping, list)):
            raise HookValidationError(
                f"invalid YAML structure: expected mapping, got {type(data).__name__}"
            )

        return cls.load(data)

    def lookup(self, event: Union[HookEvent, str]) -> tuple[HookDefinition, ...]:
        """
        Enabled hooks for an event in declared order.

        Unknown or unregistered events yield an empty tuple.
        """
        kind = HookEvent.parse(event)
        if kind is None:
            return ()
        return self._by_event.get(kind, ())

    @property
    def definitions(self) -> tuple[HookDefinition, ...]:
        """All definitions, including disabled ones, in declared order."""
        return self._definitions

    def budget_fractions(self) -> frozenset[float]:
        """Fractions registered by enabled on_budget_threshold hooks."""
        return frozenset(
            hook.threshold for hook in self.lookup(HookEvent.ON_BUDGET_THRESHOLD)
        )

    def turn_limits(self) -> frozenset[int]:
        """Explicit turn limits registered by enabled on_max_turns hooks."""
        return frozenset(
            hook.threshold
            for hook in self.lookup(HookEvent.ON_MAX_TURNS)
            if hook.threshold is not None
        )

    def to_config(self) -> dict[str, Any]:
        """
        Serialize to the hooks mapping accepted by load().

        Keys holding several hooks serialize as lists.
        """
        grouped: dict[str, list[dict[str, Any]]] = {}
        for definition in self._definitions:
            grouped.setdefault(definition.key, []).append(definition.to_config())
        return {key: hooks[0] if len(hooks) == 1 else hooks for key, hooks in grouped.items()}

    def dump(self) -> str:
        """Serialize to a YAML document with a top-level ``hooks`` key."""
        return yaml.safe_dump({"hooks": self.to_config()}, sort_keys=False, allow_unicode=True)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        counts = ", ".join(f"{event.value}={len(hooks)}" for event, hooks in self._by_event.items())
        return f"HookRegistry({counts})"
