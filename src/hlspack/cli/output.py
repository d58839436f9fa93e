"""CLI output formatting for JSON and human-readable output."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn

import click

from hlspack.cli.exit_codes import ExitCode
from hlspack.domain.models import ProcessingResult


@dataclass
class CLIResult:
    """Result object for CLI operations.

    Provides consistent JSON serialization for command results.
    """

    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    exit_code: int = ExitCode.SUCCESS

    def to_json(self) -> str:
        """Serialize to a JSON string.

        Returns:
            JSON with status and message, the data fields, and an error
            object when the operation did not succeed.
        """
        output: dict[str, Any] = {
            "status": "completed" if self.success else "failed",
            "message": self.message,
        }
        output.update(self.data)
        if not self.success:
            if isinstance(self.exit_code, ExitCode):
                code_name = self.exit_code.name
            else:
                code_name = "UNKNOWN_ERROR"
            output["error"] = {"code": code_name, "message": self.message}
        return json.dumps(output, indent=2)


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Exit with a formatted error message.

    Args:
        message: Error message to display.
        code: Exit code to use (ExitCode enum or int).
        json_output: Whether to format output as JSON.

    Note:
        This function never returns; it always calls sys.exit().
    """
    if isinstance(code, ExitCode):
        code_name = code.name
        exit_value = int(code)
    else:
        code_name = "UNKNOWN_ERROR"
        exit_value = code

    if json_output:
        click.echo(
            json.dumps(
                {
                    "status": "failed",
                    "error": {"code": code_name, "message": message},
                }
            ),
            err=True,
        )
    else:
        click.echo(f"Error: {message}", err=True)

    sys.exit(exit_value)


def _path(value: Path | None) -> str | None:
    return str(value) if value is not None else None


def format_size(size_bytes: int) -> str:
    """Format a byte count for display (e.g. "12.5 MB")."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def result_to_dict(result: ProcessingResult) -> dict[str, Any]:
    """Convert a ProcessingResult to JSON-serializable primitives."""
    meta = result.metadata
    return {
        "video_id": result.video_id,
        "success": result.success,
        "master_playlist": _path(result.master_playlist),
        "variants": [
            {
                "name": v.name,
                "resolution": v.resolution,
                "playlist_path": str(v.playlist_path),
                "segment_count": v.segment_count,
                "size": v.size,
                "bitrate": v.bitrate,
            }
            for v in result.variants
        ],
        "audio_tracks": [
            {
                "language": a.language,
                "name": a.name,
                "playlist_path": str(a.playlist_path),
                "size": a.size,
                "is_default": a.is_default,
            }
            for a in result.audio_tracks
        ],
        "subtitles": [
            {
                "language": s.language,
                "name": s.name,
                "format": s.format,
                "path": str(s.path),
                "playlist_path": _path(s.playlist_path),
                "is_default": s.is_default,
                "is_forced": s.is_forced,
            }
            for s in result.subtitles
        ],
        "metadata": {
            "original_file": str(meta.original_file),
            "duration": meta.duration,
            "original_size": meta.original_size,
            "processed_size": meta.processed_size,
            "compression_ratio": meta.compression_ratio,
            "processing_time": meta.processing_time,
        },
        "errors": [
            {
                "stage": e.stage,
                "message": e.message,
                "variant": e.variant,
                "timestamp": e.timestamp.isoformat(),
            }
            for e in result.errors
        ],
    }


def format_result(result: ProcessingResult) -> str:
    """Render a human-readable job summary."""
    lines = []
    if result.master_playlist is not None:
        lines.append(f"Master playlist: {result.master_playlist}")
    else:
        lines.append("Master playlist: not written")

    if result.variants:
        lines.append("")
        lines.append("Variants:")
        for v in result.variants:
            lines.append(
                f"  {v.name:<8} {v.resolution:<11} {v.bitrate:>7}  "
                f"{v.segment_count} segment(s)  {format_size(v.size)}"
            )
    if result.audio_tracks:
        lines.append("")
        lines.append("Audio tracks:")
        for a in result.audio_tracks:
            marker = " (default)" if a.is_default else ""
            lines.append(f"  {a.language:<4} {a.name}{marker}")
    if result.subtitles:
        lines.append("")
        lines.append("Subtitles:")
        for s in result.subtitles:
            marker = " (default)" if s.is_default else ""
            lines.append(f"  {s.language:<4} {s.name} [{s.format}]{marker}")
    if result.errors:
        lines.append("")
        lines.append(f"Errors ({len(result.errors)}):")
        for e in result.errors:
            target = f" {e.variant}" if e.variant else ""
            lines.append(f"  [{e.stage}]{target}: {e.message}")

    meta = result.metadata
    lines.append("")
    lines.append(
        f"Processed {format_size(meta.original_size)} -> "
        f"{format_size(meta.processed_size)} in {meta.processing_time:.1f}s"
    )
    return "\n".join(lines)
