"""Command line interface for checking and replaying hook configurations."""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

from .config import Config
from .hooks import HookEvent, HookRegistry, HookSession, HookValidationError, LifecycleEvent


def configure_logging(level: str) -> None:
    """Send loguru output to stderr at the given level."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>",
        level=level.upper(),
    )


def load_events(path: Path) -> list[LifecycleEvent]:
    """
    Read a YAML list of events.

    Each entry has ``kind`` and optionally ``tool``, ``payload`` and ``value``.

    Raises:
        ValueError: If the file is not a list of event mappings
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    if isinstance(data, dict) and "events" in data:
        data = data["events"] or []
    if not isinstance(data, list):
        raise ValueError(f"events file must hold a list, got {type(data).__name__}")

    events = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict) or "kind" not in entry:
            raise ValueError(f"event #{index} must be a mapping with a 'kind' field")
        payload = entry.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValueError(f"event #{index} payload must be a mapping")
        events.append(
            LifecycleEvent(
                kind=entry["kind"],
                tool_name=entry.get("tool"),
                payload=payload,
                value=entry.get("value"),
            )
        )
    return events


def cmd_check(args: argparse.Namespace) -> int:
    """Validate a hooks file and print a per-event summary."""
    registry = HookRegistry.from_yaml(args.file)
    print(f"{args.file}: {len(registry)} hook(s) valid")
    for event in HookEvent:
        hooks = registry.lookup(event)
        if hooks:
            names = ", ".join(f"{hook.name} [{hook.action.value}]" for hook in hooks)
            print(f"  {event.value}: {names}")
    disabled = [hook.name for hook in registry.definitions if not hook.enabled]
    if disabled:
        print(f"  disabled: {', '.join(disabled)}")
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    """Replay events through a fresh session and print each decision."""
    session = HookSession(
        HookRegistry.from_yaml(args.file),
        budget_limit=args.budget,
        max_turns=args.max_turns,
    )
    for event in load_events(Path(args.events)):
        decision = session.dispatch(event)
        record = {"kind": str(getattr(event.kind, "value", event.kind)), "tool": event.tool_name}
        record.update(decision.to_dict())
        print(json.dumps(record, ensure_ascii=False))
        if decision.stopped:
            break
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hookgate",
        description="Validate and replay agent hook configurations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate a hooks file
  python -m hookgate check config/hooks.yaml

  # Replay recorded events against a $5 budget
  python -m hookgate simulate config/hooks.yaml events.yaml --budget 5
        """,
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=Config.LOG_LEVEL,
        help=f"Loguru level for diagnostics (default: {Config.LOG_LEVEL})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Validate a hooks YAML file")
    check.add_argument("file", type=str, help="Hooks YAML file")
    check.set_defaults(handler=cmd_check)

    simulate = subparsers.add_parser("simulate", help="Replay events against a hooks file")
    simulate.add_argument("file", type=str, help="Hooks YAML file")
    simulate.add_argument("events", type=str, help="YAML list of lifecycle events")
    simulate.add_argument(
        "--budget",
        type=float,
        default=Config.BUDGET_USD,
        help="Session budget in USD for threshold hooks",
    )
    simulate.add_argument(
        "--max-turns",
        type=int,
        default=Config.MAX_TURNS,
        help="Turn limit for on_max_turns hooks without a threshold",
    )
    simulate.set_defaults(handler=cmd_simulate)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return args.handler(args)
    except FileNotFoundError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except HookValidationError as e:
        print(f"invalid hooks: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
