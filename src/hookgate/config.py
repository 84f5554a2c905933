"""Centralized configuration for hookgate."""

import os
from typing import Optional


class Config:
    """
    hookgate configuration with environment variable overrides.

    All configuration values are centralized here with sensible defaults.
    Values can be overridden via environment variables.
    """

    @staticmethod
    def _parse_optional_float(value: Optional[str]) -> Optional[float]:
        """Parse an optional float from an environment string."""
        if value is None or value.strip() == "":
            return None
        try:
            return float(value)
        except ValueError as e:
            raise ValueError(f"Invalid float environment variable: {e}")

    @staticmethod
    def _parse_optional_int(value: Optional[str]) -> Optional[int]:
        """Parse an optional int from an environment string."""
        if value is None or value.strip() == "":
            return None
        try:
            return int(value)
        except ValueError as e:
            raise ValueError(f"Invalid integer environment variable: {e}")

    # ========================================================================
    # Rule Source
    # ========================================================================
    HOOKS_CONFIG_PATH: str = os.getenv("HOOKS_CONFIG_PATH", "./config/hooks.yaml")

    # ========================================================================
    # Session Limits
    # ========================================================================
    BUDGET_USD: Optional[float] = _parse_optional_float.__func__(os.getenv("HOOKS_BUDGET_USD"))
    MAX_TURNS: Optional[int] = _parse_optional_int.__func__(os.getenv("HOOKS_MAX_TURNS"))

    # ========================================================================
    # Rule Safety
    # ========================================================================
    MAX_PATTERN_LENGTH: int = int(os.getenv("HOOKS_MAX_PATTERN_LENGTH", "512"))

    # ========================================================================
    # Messages and History
    # ========================================================================
    MESSAGE_VALUE_MAX_CHARS: int = int(os.getenv("HOOKS_MESSAGE_VALUE_MAX_CHARS", "200"))
    DECISION_HISTORY: int = int(os.getenv("HOOKS_DECISION_HISTORY", "100"))

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration consistency.

        Checks:
        - Budget and turn limits are positive when set
        - Pattern and message caps are positive

        Returns:
            True if validation passes

        Raises:
            ValueError: If validation fails
        """
        errors = []

        if cls.BUDGET_USD is not None and cls.BUDGET_USD <= 0:
            errors.append(f"BUDGET_USD must be > 0, got {cls.BUDGET_USD}")

        if cls.MAX_TURNS is not None and cls.MAX_TURNS <= 0:
            errors.append(f"MAX_TURNS must be > 0, got {cls.MAX_TURNS}")

        if cls.MAX_PATTERN_LENGTH <= 0:
            errors.append(f"MAX_PATTERN_LENGTH must be > 0, got {cls.MAX_PATTERN_LENGTH}")

        if cls.MESSAGE_VALUE_MAX_CHARS <= 0:
            errors.append(
                f"MESSAGE_VALUE_MAX_CHARS must be > 0, got {cls.MESSAGE_VALUE_MAX_CHARS}"
            )

        if cls.DECISION_HISTORY < 0:
            errors.append(f"DECISION_HISTORY must be >= 0, got {cls.DECISION_HISTORY}")

        if cls.LOG_LEVEL.upper() not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            errors.append(f"LOG_LEVEL is not a loguru level: {cls.LOG_LEVEL}")

        if errors:
            raise ValueError(f"Config validation failed: {'; '.join(errors)}")

        return True
