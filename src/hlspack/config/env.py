"""Environment variable reader with dependency injection support.

This module provides the EnvReader class for reading and parsing environment
variables with type conversion and validation. It supports dependency injection
for testing by accepting an optional env mapping.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)


class EnvReader:
    """Environment variable reader with type conversion and validation.

    Example:
        # Production usage (reads from os.environ)
        reader = EnvReader()
        timeout = reader.get_int("HLSPACK_PROBE_TIMEOUT", 60)

        # Testing usage (inject custom env)
        reader = EnvReader(env={"HLSPACK_PROBE_TIMEOUT": "5"})
        timeout = reader.get_int("HLSPACK_PROBE_TIMEOUT", 60)  # Returns 5
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the environment reader.

        Args:
            env: Optional mapping to use instead of os.environ.
                 If None, reads from os.environ. Useful for testing.
        """
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string from environment variable."""
        value = self._env.get(var)
        if value is None:
            return default
        return value

    def get_int(self, var: str, default: int | None = None) -> int | None:
        """Get an integer from environment variable.

        Logs a warning and returns default if the value cannot be parsed.
        """
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Get a boolean from environment variable.

        Recognizes "true", "1", "yes" and "on" (case-insensitive) as true.
        All other non-empty values are treated as false.
        """
        value = self._env.get(var)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Get a path from environment variable.

        Args:
            var: Environment variable name.
            must_exist: If True, warn and return default when the path
                does not exist.
            default: Default value if not set or path doesn't exist.

        Returns:
            Path object, or default.
        """
        value = self._env.get(var)
        if value is None:
            return default

        path = Path(value).expanduser()
        if must_exist and not path.exists():
            logger.warning(
                "Environment variable %s points to non-existent path: %s",
                var,
                value,
            )
            return default
        return path
