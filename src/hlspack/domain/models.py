"""Domain models for hlspack.

This module contains the core domain models used across hlspack modules:
probe results, the processing plan, HLS descriptors and job results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from hlspack.domain.enums import MediaType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Probe results
# =============================================================================


@dataclass
class StreamInfo:
    """A single stream within a probed media file."""

    index: int
    codec_type: MediaType
    codec_name: str | None = None
    codec_long_name: str | None = None
    profile: str | None = None
    # Video-specific fields
    width: int | None = None
    height: int | None = None
    frame_rate: str | None = None  # Stored as string to preserve precision
    pixel_format: str | None = None
    # Audio-specific fields
    sample_rate: int | None = None
    channels: int | None = None
    channel_layout: str | None = None
    bitrate: int | None = None
    duration_seconds: float | None = None
    language: str | None = None
    title: str | None = None
    is_default: bool = False
    is_forced: bool = False

    @property
    def frame_rate_value(self) -> float | None:
        """Return the frame rate as a float, or None if unknown."""
        return parse_frame_rate(self.frame_rate)


@dataclass(frozen=True)
class PrimaryVideoInfo:
    """Summary of the first video stream."""

    codec: str | None
    width: int
    height: int
    frame_rate: float | None = None
    aspect_ratio: str | None = None
    bitrate: int | None = None
    pixel_format: str | None = None


@dataclass(frozen=True)
class PrimaryAudioInfo:
    """Summary of the first audio stream."""

    codec: str | None
    sample_rate: int
    channels: int
    channel_layout: str | None = None
    bitrate: int | None = None
    language: str | None = None


@dataclass
class MediaMetadata:
    """Result of probing a media file."""

    file_path: Path
    media_type: MediaType
    duration_seconds: float
    size_bytes: int
    format_name: str | None = None
    streams: list[StreamInfo] = field(default_factory=list)
    primary_video: PrimaryVideoInfo | None = None
    primary_audio: PrimaryAudioInfo | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def video_streams(self) -> list[StreamInfo]:
        """Return all video streams in stream order."""
        return [s for s in self.streams if s.codec_type == MediaType.VIDEO]

    @property
    def audio_streams(self) -> list[StreamInfo]:
        """Return all audio streams in stream order."""
        return [s for s in self.streams if s.codec_type == MediaType.AUDIO]

    @property
    def subtitle_streams(self) -> list[StreamInfo]:
        """Return all subtitle streams in stream order."""
        return [s for s in self.streams if s.codec_type == MediaType.SUBTITLE]


def parse_frame_rate(value: str | float | None) -> float | None:
    """Parse an ffprobe frame rate ("30000/1001", "25") into a float.

    Args:
        value: Frame rate as a rational string, number or None.

    Returns:
        Frame rate in frames per second, or None if unparseable or zero.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    numerator, _, denominator = value.partition("/")
    try:
        num = float(numerator)
        den = float(denominator) if denominator else 1.0
    except ValueError:
        return None
    if num <= 0 or den <= 0:
        return None
    return num / den


# =============================================================================
# Planning
# =============================================================================


@dataclass(frozen=True)
class Resolution:
    """One rung of a resolution ladder."""

    name: str  # "1080p", "720p" or "WxH" for non-standard sizes
    width: int
    height: int
    bitrate: str  # ffmpeg-style video bitrate, e.g. "2800k"

    @property
    def pixels(self) -> int:
        """Return the pixel count of this resolution."""
        return self.width * self.height


@dataclass(frozen=True)
class HLSVariant:
    """A video variant as referenced from the master playlist."""

    name: str
    width: int
    height: int
    bandwidth: int  # bits per second, video + audio
    video_bitrate: str  # "5000k"
    audio_bitrate: str  # "128k"
    codec: str  # "avc1.64001f,mp4a.40.2"
    playlist_path: str  # relative to the master playlist
    frame_rate: float | None = None
    audio_group: str | None = None
    subtitle_group: str | None = None


@dataclass(frozen=True)
class AudioTrackInfo:
    """An alternate audio track detected in the source."""

    index: int  # Container stream index
    stream_index: int  # Audio-relative index (0, 1, 2...) for -map 0:a:N
    codec: str | None
    language: str  # BCP-47 style tag for the playlist ("en", "es", "und")
    name: str  # Display name ("English")
    channels: int = 2
    sample_rate: int | None = None
    is_default: bool = False
    title: str | None = None


@dataclass(frozen=True)
class SubtitleInfo:
    """An embedded subtitle track detected in the source."""

    index: int
    stream_index: int  # Subtitle-relative index for -map 0:s:N
    language: str
    name: str
    codec: str | None
    is_default: bool = False
    is_forced: bool = False


@dataclass(frozen=True)
class ProcessingPlan:
    """Read-only plan derived once per job from probe metadata and config."""

    source_path: Path
    metadata: MediaMetadata
    resolutions: tuple[Resolution, ...]
    variants: tuple[HLSVariant, ...]
    audio_tracks: tuple[AudioTrackInfo, ...]
    subtitles: tuple[SubtitleInfo, ...]
    estimated_duration: float
    estimated_size: int  # bytes


# =============================================================================
# Rendition descriptors for the master playlist
# =============================================================================


@dataclass(frozen=True)
class HLSAudioRendition:
    """An #EXT-X-MEDIA:TYPE=AUDIO entry."""

    group_id: str
    name: str
    language: str
    playlist_path: str
    channels: int = 2
    is_default: bool = False


@dataclass(frozen=True)
class HLSSubtitleRendition:
    """An #EXT-X-MEDIA:TYPE=SUBTITLES entry."""

    group_id: str
    name: str
    language: str
    playlist_path: str
    is_default: bool = False
    is_forced: bool = False


# =============================================================================
# Segmentation
# =============================================================================


@dataclass(frozen=True)
class Segment:
    """A media segment referenced by a media playlist."""

    duration: float  # seconds
    uri: str


@dataclass
class SegmentationResult:
    """Output of one segmentation run (video variant or audio track)."""

    playlist_path: Path
    segment_count: int
    file_size: int  # bytes, all segments
    duration: float  # seconds, sum of segment durations
    segments: list[Segment] = field(default_factory=list)


@dataclass(frozen=True)
class SegmentationProgress:
    """A periodic progress sample from a segmentation run."""

    percent: float
    speed: str | None = None
    fps: float | None = None
    bitrate: str | None = None
    eta: str | None = None


# =============================================================================
# Subtitle outputs
# =============================================================================


@dataclass(frozen=True)
class ConvertedSubtitle:
    """Subtitle converted to WebVTT, playable through HLS."""

    path: Path

    @property
    def format(self) -> str:
        return "webvtt"


@dataclass(frozen=True)
class RawSubtitle:
    """Subtitle kept in its original format (not playable through HLS)."""

    format: str
    path: Path


SubtitleOutput = ConvertedSubtitle | RawSubtitle


@dataclass(frozen=True)
class ExtractedSubtitle:
    """A subtitle track extracted from the source."""

    track: SubtitleInfo
    output: SubtitleOutput

    @property
    def language(self) -> str:
        return self.track.language


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ProcessingError:
    """A task-level failure recorded during a job."""

    stage: str  # "video", "audio", "subtitles", ...
    message: str
    variant: str | None = None  # variant name or track identifier
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class VariantResult:
    """A successfully segmented video variant."""

    name: str
    resolution: str  # "1280x720"
    playlist_path: Path
    segment_count: int
    size: int
    bitrate: str


@dataclass(frozen=True)
class AudioTrackResult:
    """A successfully segmented alternate audio track."""

    language: str
    name: str
    playlist_path: Path
    size: int
    is_default: bool = False


@dataclass(frozen=True)
class SubtitleResult:
    """A successfully extracted subtitle track."""

    language: str
    name: str
    output: SubtitleOutput
    playlist_path: Path | None = None  # Only for WebVTT outputs
    is_default: bool = False
    is_forced: bool = False

    @property
    def format(self) -> str:
        return self.output.format

    @property
    def path(self) -> Path:
        return self.output.path


@dataclass(frozen=True)
class ResultMetadata:
    """Aggregate figures for a finished job."""

    original_file: Path
    duration: float
    original_size: int
    processed_size: int
    compression_ratio: float
    processing_time: float  # wall-clock seconds


@dataclass
class ProcessingResult:
    """Outcome of one packaging job."""

    video_id: str
    master_playlist: Path | None
    variants: list[VariantResult]
    audio_tracks: list[AudioTrackResult]
    subtitles: list[SubtitleResult]
    metadata: ResultMetadata
    errors: list[ProcessingError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True if no task-level errors were recorded."""
        return not self.errors
