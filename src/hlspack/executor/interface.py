"""Segmentation and subtitle extraction protocols.

The orchestrator drives encoding through these interfaces; the ffmpeg
implementations live in hlspack.executor.segmenter and
hlspack.executor.subtitles.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from hlspack.config.processing import DEFAULT_SEGMENT_DURATION
from hlspack.domain.enums import H264Profile
from hlspack.domain.models import (
    ExtractedSubtitle,
    Resolution,
    SegmentationProgress,
    SegmentationResult,
    SubtitleInfo,
)

ProgressCallback = Callable[[SegmentationProgress], None]


@dataclass(frozen=True)
class SegmentConfig:
    """Where and how one HLS rendition is segmented."""

    output_dir: Path
    playlist_name: str  # "quality_720p.m3u8"
    segment_pattern: str  # "quality_720p_%03d.ts"
    segment_duration: float = DEFAULT_SEGMENT_DURATION
    source_duration: float | None = None  # for progress percentages
    hls_flags: tuple[str, ...] = ("independent_segments",)

    @property
    def playlist_path(self) -> Path:
        return self.output_dir / self.playlist_name


@dataclass(frozen=True)
class VideoEncodeConfig:
    """H.264 encode settings for one video variant."""

    resolution: Resolution
    preset: str = "fast"
    profile: H264Profile = H264Profile.MAIN
    frame_rate: float | None = None
    pixel_format: str = "yuv420p"
    # When False the variant is video-only and audio comes from renditions
    include_audio: bool = True
    audio_bitrate: str = "128k"
    audio_sample_rate: int = 48000
    audio_channels: int = 2


@dataclass(frozen=True)
class AudioEncodeConfig:
    """AAC encode settings for one audio rendition."""

    bitrate: str = "128k"
    sample_rate: int = 48000
    channels: int = 2
    codec: str = "aac"


@dataclass(frozen=True)
class SubtitleExtractionConfig:
    """Output settings for subtitle extraction."""

    output_dir: Path
    # Placeholders: {lang} playlist language, {index} subtitle-relative index
    filename_pattern: str = "subtitle_{lang}_{index}"

    def output_stem(self, track: SubtitleInfo) -> str:
        return self.filename_pattern.format(
            lang=track.language, index=track.stream_index
        )


class SegmentationService(Protocol):
    """Protocol for HLS segmenters."""

    def segment_video(
        self,
        source: Path,
        segment_config: SegmentConfig,
        encode_config: VideoEncodeConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> SegmentationResult:
        """Encode and segment one video variant.

        Raises:
            SegmentationError: If encoding fails or times out.
        """
        ...

    def segment_audio(
        self,
        source: Path,
        segment_config: SegmentConfig,
        audio_config: AudioEncodeConfig,
        stream_index: int,
        progress_callback: ProgressCallback | None = None,
    ) -> SegmentationResult:
        """Encode and segment one audio stream (by audio-relative index).

        Raises:
            SegmentationError: If encoding fails or times out.
        """
        ...


class SubtitleExtractor(Protocol):
    """Protocol for subtitle extraction."""

    def extract_embedded(
        self,
        source: Path,
        config: SubtitleExtractionConfig,
        extract_all: bool = True,
    ) -> list[ExtractedSubtitle]:
        """Extract embedded subtitle tracks.

        With extract_all False only the default track is extracted.
        """
        ...

    def extract_track(
        self,
        source: Path,
        subtitle: SubtitleInfo,
        config: SubtitleExtractionConfig,
    ) -> ExtractedSubtitle:
        """Extract one subtitle track.

        Raises:
            SubtitleExtractionError: If extraction fails.
        """
        ...
