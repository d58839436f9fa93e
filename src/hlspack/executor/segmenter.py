"""ffmpeg HLS segmentation of video variants and audio renditions."""

import logging
from pathlib import Path

from hlspack.domain.models import Segment, SegmentationResult
from hlspack.exceptions import PlaylistParseError, SegmentationError
from hlspack.executor.ffmpeg_base import FFmpegExecutorBase, stderr_tail
from hlspack.executor.interface import (
    AudioEncodeConfig,
    ProgressCallback,
    SegmentConfig,
    VideoEncodeConfig,
)
from hlspack.playlist.generator import parse_bitrate_kbps
from hlspack.playlist.parser import parse_playlist
from hlspack.tools.ffmpeg_progress import FFmpegProgress

logger = logging.getLogger(__name__)

# Minimum change in percent between two forwarded progress samples
MIN_PROGRESS_STEP = 0.5


def _format_number(value: float) -> str:
    """Format a float without a trailing ".0" ("6.0" -> "6")."""
    return f"{value:g}"


def build_hls_options(segment_config: SegmentConfig) -> list[str]:
    """Build the ffmpeg HLS muxer options for a VOD rendition."""
    options = [
        "-f",
        "hls",
        "-hls_time",
        _format_number(segment_config.segment_duration),
        "-hls_list_size",
        "0",
        "-hls_playlist_type",
        "vod",
        "-hls_segment_type",
        "mpegts",
    ]
    if segment_config.hls_flags:
        options.extend(["-hls_flags", "+".join(segment_config.hls_flags)])
    options.extend(
        [
            "-hls_segment_filename",
            str(segment_config.output_dir / segment_config.segment_pattern),
            str(segment_config.playlist_path),
        ]
    )
    return options


def build_video_command(
    ffmpeg_path: Path,
    source: Path,
    segment_config: SegmentConfig,
    encode_config: VideoEncodeConfig,
) -> list[str]:
    """Build the ffmpeg command that encodes and segments one variant.

    Keyframes are forced on segment boundaries so every segment starts
    with an IDR frame.
    """
    resolution = encode_config.resolution
    video_kbps = round(parse_bitrate_kbps(resolution.bitrate))
    duration = _format_number(segment_config.segment_duration)

    cmd = [
        str(ffmpeg_path),
        "-hide_banner",
        "-nostdin",
        "-y",
        "-i",
        str(source),
        "-map",
        "0:v:0",
    ]
    if encode_config.include_audio:
        # Trailing "?" keeps silent sources encodable
        cmd.extend(["-map", "0:a:0?"])
    cmd.extend(
        [
            "-c:v",
            "libx264",
            "-preset",
            encode_config.preset,
            "-profile:v",
            encode_config.profile.value,
            "-b:v",
            f"{video_kbps}k",
            "-maxrate",
            f"{video_kbps}k",
            "-bufsize",
            f"{video_kbps * 2}k",
            "-vf",
            f"scale={resolution.width}:{resolution.height}",
            "-pix_fmt",
            encode_config.pixel_format,
            "-sc_threshold",
            "0",
            "-force_key_frames",
            f"expr:gte(t,n_forced*{duration})",
        ]
    )
    if encode_config.frame_rate:
        cmd.extend(["-r", _format_number(round(encode_config.frame_rate, 3))])
    if encode_config.include_audio:
        cmd.extend(
            [
                "-c:a",
                "aac",
                "-b:a",
                encode_config.audio_bitrate,
                "-ar",
                str(encode_config.audio_sample_rate),
                "-ac",
                str(encode_config.audio_channels),
            ]
        )
    else:
        cmd.append("-an")
    cmd.append("-sn")
    cmd.extend(build_hls_options(segment_config))
    return cmd


def build_audio_command(
    ffmpeg_path: Path,
    source: Path,
    segment_config: SegmentConfig,
    audio_config: AudioEncodeConfig,
    stream_index: int,
) -> list[str]:
    """Build the ffmpeg command that encodes and segments one audio stream."""
    cmd = [
        str(ffmpeg_path),
        "-hide_banner",
        "-nostdin",
        "-y",
        "-i",
        str(source),
        "-map",
        f"0:a:{stream_index}",
        "-vn",
        "-sn",
        "-c:a",
        audio_config.codec,
        "-b:a",
        audio_config.bitrate,
        "-ar",
        str(audio_config.sample_rate),
        "-ac",
        str(audio_config.channels),
    ]
    cmd.extend(build_hls_options(segment_config))
    return cmd


def collect_segmentation_result(segment_config: SegmentConfig) -> SegmentationResult:
    """Read back the playlist ffmpeg wrote and measure its segments.

    Raises:
        SegmentationError: If the playlist is missing or unparseable.
    """
    playlist_path = segment_config.playlist_path
    try:
        text = playlist_path.read_text(encoding="utf-8")
        parsed = parse_playlist(text)
    except OSError as e:
        raise SegmentationError(f"Cannot read playlist {playlist_path}: {e}") from e
    except PlaylistParseError as e:
        raise SegmentationError(f"Invalid playlist {playlist_path}: {e}") from e

    segments: list[Segment] = list(parsed.segments)
    total_size = 0
    for segment in segments:
        segment_path = segment_config.output_dir / segment.uri
        try:
            total_size += segment_path.stat().st_size
        except OSError:
            logger.warning("Segment listed but missing: %s", segment_path)

    return SegmentationResult(
        playlist_path=playlist_path,
        segment_count=len(segments),
        file_size=total_size,
        duration=sum(segment.duration for segment in segments),
        segments=segments,
    )


class _ProgressForwarder:
    """Converts ffmpeg progress lines to SegmentationProgress samples."""

    def __init__(self, callback: ProgressCallback, duration: float | None) -> None:
        self._callback = callback
        self._duration = duration
        self._last_percent = -1.0

    def __call__(self, progress: FFmpegProgress) -> None:
        sample = progress.to_segmentation_progress(self._duration)
        if sample.percent - self._last_percent < MIN_PROGRESS_STEP:
            return
        self._last_percent = sample.percent
        self._callback(sample)


class FFmpegSegmenter(FFmpegExecutorBase):
    """SegmentationService implementation backed by ffmpeg's HLS muxer."""

    def segment_video(
        self,
        source: Path,
        segment_config: SegmentConfig,
        encode_config: VideoEncodeConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> SegmentationResult:
        """Encode and segment one video variant.

        Raises:
            SegmentationError: If ffmpeg fails, times out or writes no
                usable playlist.
        """
        cmd = build_video_command(
            self.tool_path, source, segment_config, encode_config
        )
        description = f"variant {encode_config.resolution.name}"
        return self._segment(cmd, description, segment_config, progress_callback)

    def segment_audio(
        self,
        source: Path,
        segment_config: SegmentConfig,
        audio_config: AudioEncodeConfig,
        stream_index: int,
        progress_callback: ProgressCallback | None = None,
    ) -> SegmentationResult:
        """Encode and segment audio stream stream_index of source.

        Raises:
            SegmentationError: If ffmpeg fails, times out or writes no
                usable playlist.
        """
        if stream_index < 0:
            raise ValueError("stream_index must be non-negative")
        cmd = build_audio_command(
            self.tool_path, source, segment_config, audio_config, stream_index
        )
        description = f"audio stream {stream_index}"
        return self._segment(cmd, description, segment_config, progress_callback)

    def _segment(
        self,
        cmd: list[str],
        description: str,
        segment_config: SegmentConfig,
        progress_callback: ProgressCallback | None,
    ) -> SegmentationResult:
        try:
            segment_config.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SegmentationError(
                f"Cannot create output directory {segment_config.output_dir}: {e}"
            ) from e

        forwarder = None
        if progress_callback is not None:
            forwarder = _ProgressForwarder(
                progress_callback, segment_config.source_duration
            )

        success, return_code, stderr_lines = self._run_ffmpeg_with_timeout(
            cmd, description, timeout=self.timeout, progress_callback=forwarder
        )
        if not success:
            tail = stderr_tail(stderr_lines)
            if return_code == -1:
                message = f"ffmpeg {description} timed out after {self.timeout}s"
            else:
                message = f"ffmpeg {description} failed with exit code {return_code}"
            raise SegmentationError(message, return_code=return_code, stderr_tail=tail)

        result = collect_segmentation_result(segment_config)
        logger.info(
            "Segmented %s: %d segments, %.1fs, %d bytes",
            description,
            result.segment_count,
            result.duration,
            result.file_size,
        )
        return result
