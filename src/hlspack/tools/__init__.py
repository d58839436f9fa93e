"""External tool helpers: path resolution and ffmpeg progress parsing."""

from hlspack.tools.ffmpeg_progress import (
    FFmpegProgress,
    format_seconds,
    parse_ffmpeg_time,
    parse_stderr_progress,
)
from hlspack.tools.paths import SUPPORTED_TOOLS, find_tool, require_tool

__all__ = [
    "FFmpegProgress",
    "SUPPORTED_TOOLS",
    "find_tool",
    "format_seconds",
    "parse_ffmpeg_time",
    "parse_stderr_progress",
    "require_tool",
]
