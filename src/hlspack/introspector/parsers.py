"""Pure parsing functions for ffprobe JSON output.

These functions transform ffprobe JSON data into hlspack domain objects.
All functions are pure (no I/O, no side effects) for easy testing.
"""

import logging
from pathlib import Path
from typing import Any

from hlspack.domain.enums import MediaType
from hlspack.domain.models import (
    MediaMetadata,
    PrimaryAudioInfo,
    PrimaryVideoInfo,
    StreamInfo,
    parse_frame_rate,
)

logger = logging.getLogger(__name__)

# Extensions classified as still images regardless of stream layout
IMAGE_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".svg"}
)

_CODEC_TYPES = {
    "video": MediaType.VIDEO,
    "audio": MediaType.AUDIO,
    "subtitle": MediaType.SUBTITLE,
}


def sanitize_string(value: str | None) -> str | None:
    """Sanitize a string by replacing invalid UTF-8 characters."""
    if value is None:
        return None
    return value.encode("utf-8", errors="replace").decode("utf-8")


def validate_positive_int(
    value: Any,
    field_name: str,
    file_path: str | None = None,
) -> int | None:
    """Validate that a value is a non-negative integer or None.

    ffprobe reports some integers as strings (sample_rate, bit_rate), so
    numeric strings are accepted.

    Args:
        value: Value to validate.
        field_name: Field name for warning messages.
        file_path: File path context for warnings.

    Returns:
        Validated value or None if invalid.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError:
            logger.warning(
                "Expected int for %s, got %r in %s", field_name, value, file_path
            )
            return None
    if isinstance(value, bool) or not isinstance(value, int):
        logger.warning(
            "Expected int for %s, got %s in %s",
            field_name,
            type(value).__name__,
            file_path,
        )
        return None
    if value < 0:
        logger.warning("Invalid negative %s: %d in %s", field_name, value, file_path)
        return None
    return value


def parse_duration(value: Any) -> float | None:
    """Parse duration string from ffprobe into seconds.

    Args:
        value: Duration string from ffprobe (e.g., "3600.000") or None.

    Returns:
        Duration in seconds as float, or None if parsing fails or negative.
    """
    if value is None:
        return None
    try:
        duration = float(value)
    except (ValueError, TypeError):
        return None
    return duration if duration >= 0 else None


def map_codec_type(codec_type: str | None) -> MediaType:
    """Map an ffprobe codec_type to a MediaType."""
    return _CODEC_TYPES.get(codec_type or "", MediaType.UNKNOWN)


def is_attached_picture(stream: dict) -> bool:
    """Return True for cover-art video streams (disposition attached_pic)."""
    return stream.get("disposition", {}).get("attached_pic", 0) == 1


def parse_stream(
    stream: dict,
    container_duration: float | None = None,
    file_path: str | None = None,
) -> StreamInfo:
    """Parse a single ffprobe stream dict into a StreamInfo.

    Args:
        stream: Stream dictionary from ffprobe JSON.
        container_duration: Fallback duration from container format.
        file_path: Optional file path for context in warning messages.

    Returns:
        StreamInfo domain object.
    """
    codec_type = map_codec_type(stream.get("codec_type"))
    disposition = stream.get("disposition", {})
    tags = stream.get("tags", {})

    info = StreamInfo(
        index=stream.get("index", 0),
        codec_type=codec_type,
        codec_name=stream.get("codec_name"),
        codec_long_name=sanitize_string(stream.get("codec_long_name")),
        profile=stream.get("profile"),
        bitrate=validate_positive_int(stream.get("bit_rate"), "bit_rate", file_path),
        language=tags.get("language") or None,
        title=sanitize_string(tags.get("title")),
        is_default=disposition.get("default", 0) == 1,
        is_forced=disposition.get("forced", 0) == 1,
    )

    duration = parse_duration(stream.get("duration"))
    info.duration_seconds = duration if duration is not None else container_duration

    if codec_type == MediaType.VIDEO:
        info.width = validate_positive_int(stream.get("width"), "width", file_path)
        info.height = validate_positive_int(stream.get("height"), "height", file_path)
        info.pixel_format = stream.get("pix_fmt")
        # Prefer avg_frame_rate; r_frame_rate is a timebase guess for VFR sources
        frame_rate = stream.get("avg_frame_rate") or stream.get("r_frame_rate")
        if frame_rate and frame_rate != "0/0":
            info.frame_rate = frame_rate
    elif codec_type == MediaType.AUDIO:
        info.sample_rate = validate_positive_int(
            stream.get("sample_rate"), "sample_rate", file_path
        )
        info.channels = validate_positive_int(
            stream.get("channels"), "channels", file_path
        )
        info.channel_layout = stream.get("channel_layout")

    return info


def _primary_video(
    streams: list[dict], parsed: list[StreamInfo]
) -> PrimaryVideoInfo | None:
    for raw, info in zip(streams, parsed):
        if info.codec_type != MediaType.VIDEO or is_attached_picture(raw):
            continue
        if not info.width or not info.height:
            continue
        return PrimaryVideoInfo(
            codec=info.codec_name,
            width=info.width,
            height=info.height,
            frame_rate=parse_frame_rate(info.frame_rate),
            aspect_ratio=raw.get("display_aspect_ratio"),
            bitrate=info.bitrate,
            pixel_format=info.pixel_format,
        )
    return None


def _primary_audio(parsed: list[StreamInfo]) -> PrimaryAudioInfo | None:
    for info in parsed:
        if info.codec_type != MediaType.AUDIO:
            continue
        return PrimaryAudioInfo(
            codec=info.codec_name,
            sample_rate=info.sample_rate or 0,
            channels=info.channels or 0,
            channel_layout=info.channel_layout,
            bitrate=info.bitrate,
            language=info.language,
        )
    return None


def detect_media_type(
    path: Path,
    primary_video: PrimaryVideoInfo | None,
    primary_audio: PrimaryAudioInfo | None,
) -> MediaType:
    """Classify a file from its extension and primary streams.

    Cover-art-only files (a single attached picture plus audio) are audio.
    """
    if path.suffix.lower() in IMAGE_EXTENSIONS:
        return MediaType.IMAGE
    if primary_video is not None:
        return MediaType.VIDEO
    if primary_audio is not None:
        return MediaType.AUDIO
    return MediaType.UNKNOWN


def _parse_container_tags(tags: dict) -> dict[str, str]:
    result: dict[str, str] = {}
    for key, value in tags.items():
        sanitized = sanitize_string(str(value))
        if sanitized is not None:
            result[key.casefold()] = sanitized
    return result


def parse_ffprobe_output(
    path: Path,
    data: dict,
    size_bytes: int | None = None,
) -> MediaMetadata:
    """Parse ffprobe JSON output into MediaMetadata.

    Args:
        path: Path to the probed file.
        data: Parsed ffprobe JSON output.
        size_bytes: File size; falls back to format.size when omitted.

    Returns:
        MediaMetadata with streams and primary stream summaries.
    """
    format_info = data.get("format", {})
    container_duration = parse_duration(format_info.get("duration"))
    file_path = str(path)

    raw_streams: list[dict] = []
    parsed: list[StreamInfo] = []
    seen_indices: set[int] = set()
    for stream in data.get("streams", []):
        index = stream.get("index", 0)
        if index in seen_indices:
            logger.warning("Duplicate stream index %d in %s, skipping", index, path)
            continue
        seen_indices.add(index)
        raw_streams.append(stream)
        parsed.append(parse_stream(stream, container_duration, file_path))

    primary_video = _primary_video(raw_streams, parsed)
    primary_audio = _primary_audio(parsed)

    if size_bytes is None:
        size_bytes = (
            validate_positive_int(format_info.get("size"), "size", file_path) or 0
        )

    # Cover art is not a video stream for packaging purposes
    streams = [
        info
        for raw, info in zip(raw_streams, parsed)
        if not (info.codec_type == MediaType.VIDEO and is_attached_picture(raw))
    ]

    return MediaMetadata(
        file_path=path,
        media_type=detect_media_type(path, primary_video, primary_audio),
        duration_seconds=container_duration or 0.0,
        size_bytes=size_bytes,
        format_name=format_info.get("format_name"),
        streams=streams,
        primary_video=primary_video,
        primary_audio=primary_audio,
        tags=_parse_container_tags(format_info.get("tags", {})),
    )
