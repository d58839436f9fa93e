"""Settings loader with precedence handling.

Settings are loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to functions)
2. Environment variables (HLSPACK_*)
3. Config file (~/.hlspack/config.toml)
4. Default values

Environment variables:
- HLSPACK_CONFIG_PATH: Path to config file (overrides default location)
- HLSPACK_FFMPEG_PATH: Path to ffmpeg executable
- HLSPACK_FFPROBE_PATH: Path to ffprobe executable
- HLSPACK_LOG_LEVEL: Log level (debug, info, warning, error)
- HLSPACK_LOG_FILE: Log file path
- HLSPACK_LOG_FORMAT: Log format (text, json)
- HLSPACK_PROBE_TIMEOUT: ffprobe deadline in seconds
- HLSPACK_ENCODE_TIMEOUT: Base ffmpeg deadline in seconds
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from hlspack.config.env import EnvReader
from hlspack.config.models import (
    EncodingConfig,
    HLSPackSettings,
    LoggingConfig,
    ToolPathsConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".hlspack"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict[str, Any], float]] = {}
_config_cache_lock = threading.Lock()


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by HLSPACK_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("HLSPACK_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise on parse failures. If False (default),
            log a warning and return an empty dict.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.

    Raises:
        tomllib.TOMLDecodeError: When strict=True and the file cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        return {}

    with _config_cache_lock:
        if path in _config_cache:
            cached_config, cached_mtime = _config_cache[path]
            if current_mtime == cached_mtime:
                return cached_config

        try:
            result = tomllib.loads(path.read_text(encoding="utf-8"))
        except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
            if strict:
                raise
            logger.warning("Could not parse config file %s: %s", path, e)
            result = {}

        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def _optional_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def get_settings(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    log_level: str | None = None,
    log_file: Path | None = None,
    log_format: str | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> HLSPackSettings:
    """Get hlspack settings with full precedence handling.

    Args:
        config_path: Path to config file (overrides HLSPACK_CONFIG_PATH).
        ffmpeg_path: CLI override for ffmpeg path.
        ffprobe_path: CLI override for ffprobe path.
        log_level: CLI override for log level.
        log_file: CLI override for log file.
        log_format: CLI override for log format.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise on config file parse failures.

    Returns:
        HLSPackSettings with merged configuration.

    Raises:
        ValueError: If a merged value fails validation.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    tools_file = file_config.get("tools", {})
    logging_file = file_config.get("logging", {})
    encoding_file = file_config.get("encoding", {})

    tools = ToolPathsConfig(
        ffmpeg=ffmpeg_path
        or reader.get_path("HLSPACK_FFMPEG_PATH")
        or _optional_path(tools_file.get("ffmpeg")),
        ffprobe=ffprobe_path
        or reader.get_path("HLSPACK_FFPROBE_PATH")
        or _optional_path(tools_file.get("ffprobe")),
    )

    logging_config = LoggingConfig(
        level=log_level
        or reader.get_str("HLSPACK_LOG_LEVEL")
        or logging_file.get("level", "info"),
        file=log_file
        or reader.get_path("HLSPACK_LOG_FILE", must_exist=False)
        or _optional_path(logging_file.get("file")),
        format=log_format
        or reader.get_str("HLSPACK_LOG_FORMAT")
        or logging_file.get("format", "text"),
        include_stderr=bool(logging_file.get("include_stderr", False)),
        max_bytes=int(logging_file.get("max_bytes", 10_485_760)),
        backup_count=int(logging_file.get("backup_count", 5)),
    )

    encoding = EncodingConfig(
        probe_timeout=reader.get_int(
            "HLSPACK_PROBE_TIMEOUT", int(encoding_file.get("probe_timeout", 60))
        ),
        encode_timeout=reader.get_int(
            "HLSPACK_ENCODE_TIMEOUT", encoding_file.get("encode_timeout")
        ),
    )

    return HLSPackSettings(tools=tools, logging=logging_config, encoding=encoding)


def get_processing_table(config_path: Path | None = None) -> dict[str, Any]:
    """Return the [processing] table of the config file, or an empty dict."""
    table = load_config_file(config_path).get("processing", {})
    return dict(table) if isinstance(table, dict) else {}


def build_logging_config(
    base: LoggingConfig,
    *,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> LoggingConfig:
    """Build LoggingConfig by merging base config with CLI overrides.

    Args:
        base: Base logging configuration (typically from config file).
        level: Override log level. If None, uses base.level.
        file: Override log file path. If None, uses base.file.
        format: Override log format. If None, uses base.format.
        include_stderr: Override stderr inclusion.

    Returns:
        New LoggingConfig with overrides applied.
    """
    return LoggingConfig(
        level=level if level is not None else base.level,
        file=file if file is not None else base.file,
        format=format if format is not None else base.format,
        include_stderr=(
            include_stderr if include_stderr is not None else base.include_stderr
        ),
        max_bytes=base.max_bytes,
        backup_count=base.backup_count,
    )
