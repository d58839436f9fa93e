"""Custom exceptions for hlspack.

Job-level failures (missing input, probe failure, non-video input, manifest
write failure) are raised to the caller. Task-level failures (one variant,
one audio or subtitle track) are raised by collaborators and caught by the
orchestrator, which records them as ProcessingError entries.
"""

from __future__ import annotations

from pathlib import Path


class HLSPackError(Exception):
    """Base exception for hlspack errors.

    All hlspack exceptions inherit from this class, allowing callers
    to catch all packaging errors with a single except clause if desired.
    """


class ToolNotFoundError(HLSPackError):
    """Raised when a required external tool (ffmpeg, ffprobe) is unavailable."""

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(
            f"Required tool not available: {tool}. "
            f"Install ffmpeg or set HLSPACK_{tool.upper()}_PATH."
        )


class MediaIntrospectionError(HLSPackError):
    """Raised when media introspection fails."""


class MediaFileNotFoundError(MediaIntrospectionError):
    """Raised when the file to introspect does not exist.

    Attributes:
        path: The missing path.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"File not found: {path}")


class InvalidInputError(HLSPackError):
    """Raised when the source has no decodable video stream."""


class SegmentationError(HLSPackError):
    """Raised when an ffmpeg segmentation run fails.

    Attributes:
        return_code: ffmpeg exit code, -1 on timeout.
        stderr_tail: Last lines of ffmpeg stderr for diagnostics.
    """

    def __init__(
        self,
        message: str,
        return_code: int | None = None,
        stderr_tail: str | None = None,
    ) -> None:
        self.return_code = return_code
        self.stderr_tail = stderr_tail
        super().__init__(message)


class SubtitleExtractionError(HLSPackError):
    """Raised when a subtitle track cannot be extracted."""


class PlaylistWriteError(HLSPackError):
    """Raised when a playlist cannot be written to disk.

    Attributes:
        path: The playlist path that could not be written.
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot write playlist {path}: {reason}")


class PlaylistParseError(HLSPackError):
    """Raised when playlist text is not a parseable M3U8 document."""
