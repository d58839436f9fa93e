"""Application settings models.

This module defines dataclasses for hlspack application settings: tool
paths, logging and encoder timeouts. Per-job options live in
hlspack.config.processing.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class EncodingConfig:
    """Timeouts for external tool invocations."""

    # Deadline for a single ffprobe call, in seconds
    probe_timeout: int = 60

    # Base deadline for one segmentation run; None disables the limit
    encode_timeout: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        if self.encode_timeout is not None and self.encode_timeout <= 0:
            raise ValueError("encode_timeout must be positive or None")


@dataclass
class HLSPackSettings:
    """Top-level application settings."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
