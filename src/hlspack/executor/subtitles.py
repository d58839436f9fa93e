"""Subtitle extraction with ffmpeg.

Text subtitles are converted to WebVTT, the only subtitle format HLS
players load. Bitmap subtitles cannot be converted without OCR, so they
are copied out unchanged and kept next to the package.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from hlspack.config.models import ToolPathsConfig
from hlspack.domain.models import (
    ConvertedSubtitle,
    ExtractedSubtitle,
    RawSubtitle,
    SubtitleInfo,
    SubtitleOutput,
)
from hlspack.exceptions import HLSPackError, SubtitleExtractionError
from hlspack.executor.ffmpeg_base import FFmpegExecutorBase, stderr_tail
from hlspack.executor.interface import SubtitleExtractionConfig
from hlspack.introspector.interface import MetadataProvider
from hlspack.tracks import describe_subtitle_tracks

logger = logging.getLogger(__name__)

TEXT_SUBTITLE_CODECS = frozenset(
    {"subrip", "srt", "ass", "ssa", "mov_text", "webvtt", "text"}
)

# Bitmap codec -> (format name, file extension) for stream copies
BITMAP_SUBTITLE_FORMATS: Mapping[str, tuple[str, str]] = MappingProxyType(
    {
        "hdmv_pgs_subtitle": ("pgs", "sup"),
        "dvd_subtitle": ("vobsub", "mks"),
        "dvb_subtitle": ("dvb", "mks"),
    }
)


def is_text_subtitle(codec: str | None) -> bool:
    """Return True if codec can be converted to WebVTT."""
    return (codec or "").lower() in TEXT_SUBTITLE_CODECS


def build_extract_command(
    ffmpeg_path: Path,
    source: Path,
    subtitle: SubtitleInfo,
    output_path: Path,
) -> list[str]:
    """Build the ffmpeg command that extracts one subtitle stream.

    Text codecs are transcoded to WebVTT; everything else is stream-copied.
    """
    codec = "webvtt" if is_text_subtitle(subtitle.codec) else "copy"
    return [
        str(ffmpeg_path),
        "-hide_banner",
        "-nostdin",
        "-y",
        "-i",
        str(source),
        "-map",
        f"0:s:{subtitle.stream_index}",
        "-c:s",
        codec,
        str(output_path),
    ]


def plan_output(
    subtitle: SubtitleInfo, config: SubtitleExtractionConfig
) -> SubtitleOutput:
    """Decide the output file and kind for one subtitle track."""
    stem = config.output_stem(subtitle)
    if is_text_subtitle(subtitle.codec):
        return ConvertedSubtitle(path=config.output_dir / f"{stem}.vtt")
    codec = (subtitle.codec or "unknown").lower()
    format_name, extension = BITMAP_SUBTITLE_FORMATS.get(codec, (codec, "mks"))
    return RawSubtitle(
        format=format_name, path=config.output_dir / f"{stem}.{extension}"
    )


class FFmpegSubtitleExtractor(FFmpegExecutorBase):
    """SubtitleExtractor implementation backed by ffmpeg.

    Args:
        introspector: Used by extract_embedded to list subtitle tracks.
        ffmpeg_path: Explicit ffmpeg path.
        timeout: Deadline in seconds for one extraction.
        tools: Configured tool paths.
    """

    def __init__(
        self,
        introspector: MetadataProvider | None = None,
        ffmpeg_path: Path | None = None,
        timeout: float | None = None,
        tools: ToolPathsConfig | None = None,
    ) -> None:
        super().__init__(ffmpeg_path=ffmpeg_path, timeout=timeout, tools=tools)
        self._introspector = introspector

    def extract_embedded(
        self,
        source: Path,
        config: SubtitleExtractionConfig,
        extract_all: bool = True,
    ) -> list[ExtractedSubtitle]:
        """Extract embedded subtitle tracks, skipping tracks that fail.

        Args:
            source: Source media file.
            config: Output settings.
            extract_all: When False only the default track is extracted.

        Returns:
            Successfully extracted subtitles in stream order.

        Raises:
            SubtitleExtractionError: If no introspector was configured.
            MediaIntrospectionError: If the source cannot be probed.
        """
        if self._introspector is None:
            raise SubtitleExtractionError(
                "extract_embedded requires an introspector to list tracks"
            )
        metadata = self._introspector.get_metadata(source)
        tracks = describe_subtitle_tracks(metadata)
        if not extract_all:
            tracks = [track for track in tracks if track.is_default][:1]

        extracted = []
        for track in tracks:
            try:
                extracted.append(self.extract_track(source, track, config))
            except HLSPackError as e:
                logger.warning(
                    "Skipping subtitle track %d (%s): %s",
                    track.stream_index,
                    track.language,
                    e,
                )
        return extracted

    def extract_track(
        self,
        source: Path,
        subtitle: SubtitleInfo,
        config: SubtitleExtractionConfig,
    ) -> ExtractedSubtitle:
        """Extract one subtitle track.

        Raises:
            SubtitleExtractionError: If ffmpeg fails or writes nothing.
        """
        output = plan_output(subtitle, config)
        try:
            config.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SubtitleExtractionError(
                f"Cannot create subtitle directory {config.output_dir}: {e}"
            ) from e

        cmd = build_extract_command(self.tool_path, source, subtitle, output.path)
        description = f"subtitle {subtitle.stream_index} ({subtitle.language})"
        success, return_code, stderr_lines = self._run_ffmpeg_with_timeout(
            cmd, description, timeout=self.timeout
        )
        if not success:
            tail = stderr_tail(stderr_lines, count=5)
            raise SubtitleExtractionError(
                f"ffmpeg {description} failed with exit code {return_code}: {tail}"
            )
        if not output.path.exists() or output.path.stat().st_size == 0:
            raise SubtitleExtractionError(
                f"ffmpeg {description} produced no output at {output.path}"
            )

        if isinstance(output, RawSubtitle):
            logger.info(
                "Subtitle %s kept as %s (not convertible to WebVTT)",
                description,
                output.format,
            )
        return ExtractedSubtitle(track=subtitle, output=output)
