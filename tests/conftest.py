"""Shared test fixtures for hlspack."""

import shutil
import tempfile
import threading
from pathlib import Path

import pytest

from hlspack.config.processing import ProcessingConfig
from hlspack.domain.enums import MediaType
from hlspack.domain.models import (
    ConvertedSubtitle,
    ExtractedSubtitle,
    MediaMetadata,
    PrimaryAudioInfo,
    PrimaryVideoInfo,
    Segment,
    SegmentationProgress,
    SegmentationResult,
    StreamInfo,
)
from hlspack.exceptions import SegmentationError, SubtitleExtractionError


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def source_file(temp_dir: Path) -> Path:
    """Create a small placeholder source video file."""
    path = temp_dir / "input" / "movie.mkv"
    path.parent.mkdir()
    path.write_bytes(b"\x00" * 4096)
    return path


@pytest.fixture
def output_dir(temp_dir: Path) -> Path:
    return temp_dir / "output"


@pytest.fixture
def make_config(output_dir: Path):
    """Factory for ProcessingConfig rooted at the test output directory."""

    def _make(**overrides) -> ProcessingConfig:
        values = {
            "output_base_dir": output_dir,
            "extract_audio_tracks": False,
            "extract_subtitles": False,
        }
        values.update(overrides)
        return ProcessingConfig(**values)

    return _make


def _video_stream(index: int, width: int, height: int) -> StreamInfo:
    return StreamInfo(
        index=index,
        codec_type=MediaType.VIDEO,
        codec_name="h264",
        width=width,
        height=height,
        frame_rate="25/1",
        pixel_format="yuv420p",
        is_default=True,
    )


@pytest.fixture
def make_metadata():
    """Factory for probe results of a video file.

    audio and subtitles are lists of (language, title, is_default) tuples;
    subtitle tuples may carry a fourth item, the codec name.
    """

    def _make(
        path: Path = Path("/media/movie.mkv"),
        width: int = 1920,
        height: int = 1080,
        duration: float = 60.0,
        audio: list[tuple] | None = None,
        subtitles: list[tuple] | None = None,
        size_bytes: int = 4096,
    ) -> MediaMetadata:
        streams = [_video_stream(0, width, height)]
        index = 1
        for language, title, is_default in audio or []:
            streams.append(
                StreamInfo(
                    index=index,
                    codec_type=MediaType.AUDIO,
                    codec_name="aac",
                    sample_rate=48000,
                    channels=2,
                    language=language,
                    title=title,
                    is_default=is_default,
                )
            )
            index += 1
        for entry in subtitles or []:
            language, title, is_default = entry[:3]
            codec = entry[3] if len(entry) > 3 else "subrip"
            streams.append(
                StreamInfo(
                    index=index,
                    codec_type=MediaType.SUBTITLE,
                    codec_name=codec,
                    language=language,
                    title=title,
                    is_default=is_default,
                )
            )
            index += 1

        primary_audio = None
        if audio:
            primary_audio = PrimaryAudioInfo(
                codec="aac", sample_rate=48000, channels=2, language=audio[0][0]
            )
        return MediaMetadata(
            file_path=path,
            media_type=MediaType.VIDEO,
            duration_seconds=duration,
            size_bytes=size_bytes,
            format_name="matroska,webm",
            streams=streams,
            primary_video=PrimaryVideoInfo(
                codec="h264", width=width, height=height, frame_rate=25.0
            ),
            primary_audio=primary_audio,
        )

    return _make


class FakeIntrospector:
    """MetadataProvider returning canned metadata."""

    def __init__(self, metadata: MediaMetadata) -> None:
        self.metadata = metadata
        self.calls: list[Path] = []

    def get_metadata(self, path: Path) -> MediaMetadata:
        self.calls.append(path)
        return self.metadata


class FakeSegmenter:
    """SegmentationService that writes tiny segment files instead of encoding.

    Variants whose resolution name is in fail_variants raise
    SegmentationError; audio stream indices in fail_audio do the same.
    """

    def __init__(
        self,
        fail_variants: tuple[str, ...] = (),
        fail_audio: tuple[int, ...] = (),
        segments_per_output: int = 3,
    ) -> None:
        self.fail_variants = set(fail_variants)
        self.fail_audio = set(fail_audio)
        self.segments_per_output = segments_per_output
        self.video_calls: list[tuple] = []
        self.audio_calls: list[tuple] = []
        self._lock = threading.Lock()

    def _write(self, segment_config) -> SegmentationResult:
        segment_config.output_dir.mkdir(parents=True, exist_ok=True)
        segments = []
        size = 0
        for number in range(self.segments_per_output):
            name = segment_config.segment_pattern.replace("%03d", f"{number:03d}")
            data = b"\x47" * 188
            (segment_config.output_dir / name).write_bytes(data)
            size += len(data)
            segments.append(Segment(duration=segment_config.segment_duration, uri=name))
        segment_config.playlist_path.write_text("#EXTM3U\n", encoding="utf-8")
        return SegmentationResult(
            playlist_path=segment_config.playlist_path,
            segment_count=len(segments),
            file_size=size,
            duration=sum(s.duration for s in segments),
            segments=segments,
        )

    def segment_video(
        self, source, segment_config, encode_config, progress_callback=None
    ):
        with self._lock:
            self.video_calls.append((source, segment_config, encode_config))
        if encode_config.resolution.name in self.fail_variants:
            raise SegmentationError(
                f"ffmpeg variant {encode_config.resolution.name} failed", 1
            )
        if progress_callback is not None:
            progress_callback(SegmentationProgress(percent=50.0))
            progress_callback(SegmentationProgress(percent=100.0))
        return self._write(segment_config)

    def segment_audio(
        self,
        source,
        segment_config,
        audio_config,
        stream_index,
        progress_callback=None,
    ):
        with self._lock:
            self.audio_calls.append(
                (source, segment_config, audio_config, stream_index)
            )
        if stream_index in self.fail_audio:
            raise SegmentationError(f"ffmpeg audio stream {stream_index} failed", 1)
        if progress_callback is not None:
            progress_callback(SegmentationProgress(percent=100.0))
        return self._write(segment_config)


class FakeSubtitleExtractor:
    """SubtitleExtractor that writes a WebVTT stub per track."""

    def __init__(self, fail_languages: tuple[str, ...] = ()) -> None:
        self.fail_languages = set(fail_languages)
        self.calls: list = []

    def extract_track(self, source, subtitle, config):
        self.calls.append(subtitle)
        if subtitle.language in self.fail_languages:
            raise SubtitleExtractionError(f"cannot extract {subtitle.language}")
        config.output_dir.mkdir(parents=True, exist_ok=True)
        path = config.output_dir / f"{config.output_stem(subtitle)}.vtt"
        path.write_text("WEBVTT\n\n00:00.000 --> 00:01.000\nHello\n", encoding="utf-8")
        return ExtractedSubtitle(track=subtitle, output=ConvertedSubtitle(path=path))

    def extract_embedded(self, source, config, extract_all=True):
        raise NotImplementedError


@pytest.fixture
def fake_segmenter():
    """Factory for FakeSegmenter instances."""
    return FakeSegmenter


@pytest.fixture
def fake_subtitle_extractor():
    """Factory for FakeSubtitleExtractor instances."""
    return FakeSubtitleExtractor


@pytest.fixture
def fake_introspector():
    """Factory for FakeIntrospector instances."""
    return FakeIntrospector
