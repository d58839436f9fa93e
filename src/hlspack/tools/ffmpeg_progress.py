"""FFmpeg stderr progress parsing.

ffmpeg prints status lines such as

    frame= 1234 fps= 30 size= 2048kB time=00:01:23.45 bitrate=5000.0kbits/s speed=2x

to stderr while encoding. This module parses them and converts them into
SegmentationProgress samples relative to the source duration.
"""

import re
from dataclasses import dataclass

from hlspack.domain.models import SegmentationProgress


@dataclass
class FFmpegProgress:
    """Fields parsed from one ffmpeg stderr status line."""

    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    out_time_us: int | None = None  # Output time in microseconds
    speed: str | None = None

    @property
    def out_time_seconds(self) -> float | None:
        """Get output time in seconds."""
        if self.out_time_us is not None:
            return self.out_time_us / 1_000_000
        return None

    @property
    def speed_factor(self) -> float | None:
        """Return speed as a multiple of real time ("2.0x" -> 2.0)."""
        if not self.speed:
            return None
        try:
            value = float(self.speed.rstrip("x"))
        except ValueError:
            return None
        return value if value > 0 else None

    def get_percent(self, duration_seconds: float | None) -> float:
        """Calculate progress percentage based on duration.

        Args:
            duration_seconds: Total duration of the source in seconds.

        Returns:
            Progress percentage (0.0 to 100.0), or 0.0 if unknown.
        """
        if duration_seconds is None or duration_seconds <= 0:
            return 0.0
        out_time = self.out_time_seconds
        if out_time is None:
            return 0.0
        return min(100.0, (out_time / duration_seconds) * 100)

    def get_eta_seconds(self, duration_seconds: float | None) -> float | None:
        """Estimate seconds until the encode finishes, or None if unknown."""
        out_time = self.out_time_seconds
        speed = self.speed_factor
        if not duration_seconds or out_time is None or speed is None:
            return None
        return max(0.0, (duration_seconds - out_time) / speed)

    def to_segmentation_progress(
        self, duration_seconds: float | None
    ) -> SegmentationProgress:
        """Convert to a SegmentationProgress sample for duration_seconds."""
        eta = self.get_eta_seconds(duration_seconds)
        return SegmentationProgress(
            percent=self.get_percent(duration_seconds),
            speed=self.speed,
            fps=self.fps,
            bitrate=self.bitrate,
            eta=format_seconds(eta) if eta is not None else None,
        )


# Regex patterns for ffmpeg stderr status lines
PROGRESS_PATTERNS = {
    "frame": re.compile(r"frame=\s*(\d+)"),
    "fps": re.compile(r"fps=\s*([\d.]+)"),
    "bitrate": re.compile(r"bitrate=\s*([^\s]+)"),
    "speed": re.compile(r"speed=\s*([^\s]+)"),
}

_TIME_PATTERN = re.compile(r"time=\s*(-?)(\d+):(\d+):(\d+)(?:\.(\d+))?")


def _convert_progress_value(key: str, value: str) -> int | float | str | None:
    """Convert a progress value to the appropriate type.

    Args:
        key: The field name.
        value: The string value to convert.

    Returns:
        Converted value or None.
    """
    if key == "frame":
        try:
            return int(value)
        except ValueError:
            return None
    if key == "fps":
        try:
            return float(value)
        except ValueError:
            return None
    return value if value != "N/A" else None


def parse_ffmpeg_time(text: str) -> float | None:
    """Parse an ffmpeg HH:MM:SS.frac timestamp embedded in text.

    Example:
        >>> parse_ffmpeg_time("time=00:01:23.45")
        83.45
    """
    match = _TIME_PATTERN.search(text)
    if not match:
        return None
    sign, hours, minutes, seconds, fraction = match.groups()
    if sign:
        return 0.0
    total = int(hours) * 3600 + int(minutes) * 60 + int(seconds)
    if fraction:
        total += int(fraction) / (10 ** len(fraction))
    return float(total)


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Parse an ffmpeg stderr progress line.

    Audio-only encodes print "size=... time=..." without a frame counter,
    so a line is treated as progress when it has either field.

    Args:
        line: A line from ffmpeg stderr.

    Returns:
        Parsed FFmpegProgress or None if not a progress line.
    """
    if "frame=" not in line and "time=" not in line:
        return None

    result = FFmpegProgress()

    for key, pattern in PROGRESS_PATTERNS.items():
        match = pattern.search(line)
        if match:
            converted = _convert_progress_value(key, match.group(1))
            if converted is not None:
                setattr(result, key, converted)

    seconds = parse_ffmpeg_time(line)
    if seconds is not None:
        result.out_time_us = round(seconds * 1_000_000)

    if result.frame is None and result.out_time_us is None:
        return None
    return result


def format_seconds(seconds: float) -> str:
    """Format a duration as H:MM:SS."""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"
