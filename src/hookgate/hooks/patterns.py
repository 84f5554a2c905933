"""Regex compilation for hook tool filters and payload patterns."""

import re
from typing import Callable, Sequence, Union

from ..config import Config

# Tool names that are compared by equality rather than as a regex.
_PLAIN_TOOL_NAME = re.compile(r"[A-Za-z0-9_.:\-]+")

# Counted repetition: {3}, {2,}, {,5}, {1,4}
_BRACE_QUANTIFIER = re.compile(r"\{\d*,?\d*\}")

ToolFilter = Union[str, Sequence[str]]


class PatternError(ValueError):
    """Raised when a rule regex is malformed or unsafe to evaluate."""


def _quantifier_at(pattern: str, i: int) -> int:
    """Length of the quantifier starting at ``i``, 0 if there is none."""
    if i >= len(pattern):
        return 0
    if pattern[i] in "*+?":
        return 1
    if pattern[i] == "{":
        m = _BRACE_QUANTIFIER.match(pattern, i)
        if m and m.group(0) != "{}":
            return m.end() - i
    return 0


def _skip_class(pattern: str, i: int) -> int:
    """Index just past the character class opening at ``i``."""
    i += 1
    if i < len(pattern) and pattern[i] == "^":
        i += 1
    if i < len(pattern) and pattern[i] == "]":
        i += 1
    while i < len(pattern) and pattern[i] != "]":
        i += 2 if pattern[i] == "\\" else 1
    return i + 1


def _skip_group_prefix(pattern: str, i: int) -> int:
    """Index of the first body character of the group opening at ``i``."""
    i += 1
    if not pattern.startswith("?", i):
        return i
    i += 1
    if pattern.startswith("P<", i):
        end = pattern.find(">", i)
        return len(pattern) if end < 0 else end + 1
    if pattern.startswith(("<=", "<!"), i):
        return i + 2
    if i < len(pattern) and pattern[i] in ":=!>":
        return i + 1
    # Inline flags: (?i) or (?i:...)
    while i < len(pattern) and (pattern[i].isalpha() or pattern[i] == "-"):
        i += 1
    if pattern.startswith(":", i):
        i += 1
    return i


def has_ambiguous_repetition(pattern: str) -> bool:
    """
    True when a repeated group contains another quantifier or an alternation.

    ``(a+)+``, ``((a+))+``, ``(\\w+\\s?)+`` and ``(a|a?)+`` all qualify: the
    engine can split one input among the repetitions in exponentially many
    ways. A group followed only by ``?`` is not repeated and is never flagged.
    """
    # One flag per open group: does its body hold a quantifier or alternation?
    stack = [False]
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            i += 2
            continue
        if char == "[":
            i = _skip_class(pattern, i)
            continue
        if char == "(":
            stack.append(False)
            i = _skip_group_prefix(pattern, i)
            continue
        if char == "|":
            stack[-1] = True
            i += 1
            continue
        if char == ")" and len(stack) > 1:
            ambiguous = stack.pop()
            i += 1
            size = _quantifier_at(pattern, i)
            if size and pattern[i] != "?" and ambiguous:
                return True
            if ambiguous or size:
                stack[-1] = True
            i += size
            continue
        size = _quantifier_at(pattern, i)
        if size:
            stack[-1] = True
            i += size
            continue
        i += 1
    return False


def check_pattern_safety(pattern: str) -> None:
    """
    Reject regexes that are too long or prone to catastrophic backtracking.

    Rules are user-authored and evaluated on every tool call, so repeated
    groups holding a nested quantifier or an alternation are refused at
    load time instead of time-boxed.

    Raises:
        PatternError: If the pattern is unsafe
    """
    if len(pattern) > Config.MAX_PATTERN_LENGTH:
        raise PatternError(
            f"pattern is {len(pattern)} characters, limit is {Config.MAX_PATTERN_LENGTH}"
        )
    if has_ambiguous_repetition(pattern):
        raise PatternError(
            f"pattern {pattern!r} nests quantifiers or alternations in a repeated group "
            f"and may backtrack catastrophically"
        )


def compile_regex(pattern: str) -> "re.Pattern[str]":
    """
    Compile a user-authored regex after the safety check.

    Matching is case-sensitive with standard `re` semantics.

    Raises:
        PatternError: If the pattern is unsafe or does not compile
    """
    check_pattern_safety(pattern)
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError(f"invalid regular expression {pattern!r}: {e}") from e


def is_plain_tool_name(tool: str) -> bool:
    """True when a tool filter is a bare name compared by equality."""
    return _PLAIN_TOOL_NAME.fullmatch(tool) is not None


def compile_tool_filter(tool: ToolFilter) -> Callable[[str], bool]:
    """
    Build a predicate over tool names.

    - A bare name (``Bash``) matches by equality.
    - A string with regex syntax (``(Write|Edit|Bash)``) must match the
      whole tool name.
    - A list of names matches any of them exactly.

    Raises:
        PatternError: If the filter is empty or its regex is invalid
    """
    if isinstance(tool, str):
        if not tool:
            raise PatternError("tool filter must not be empty")
        if is_plain_tool_name(tool):
            return lambda name: name == tool
        regex = compile_regex(tool)
        return lambda name: regex.fullmatch(name) is not None

    names = list(tool)
    if not names:
        raise PatternError("tool filter list must not be empty")
    for name in names:
        if not isinstance(name, str) or not name:
            raise PatternError(f"tool filter entries must be non-empty strings, got {name!r}")
    allowed = frozenset(names)
    return lambda name: name in allowed
