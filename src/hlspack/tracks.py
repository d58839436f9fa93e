"""Alternate audio and subtitle track descriptors from probe metadata."""

import logging

from hlspack.domain.models import (
    AudioTrackInfo,
    MediaMetadata,
    StreamInfo,
    SubtitleInfo,
)
from hlspack.language import get_language_name, to_playlist_language

logger = logging.getLogger(__name__)


def _display_name(stream: StreamInfo, seen: dict[str, int]) -> str:
    # NAME must be unique within a rendition group
    base = stream.title.strip() if stream.title and stream.title.strip() else None
    name = base or get_language_name(stream.language)
    count = seen.get(name, 0) + 1
    seen[name] = count
    return name if count == 1 else f"{name} ({count})"


def _default_position(streams: list[StreamInfo]) -> int:
    for position, stream in enumerate(streams):
        if stream.is_default:
            return position
    return 0


def describe_audio_tracks(metadata: MediaMetadata) -> list[AudioTrackInfo]:
    """Describe every audio stream as an alternate audio rendition.

    The stream flagged default in the container is the default rendition;
    otherwise the first stream is.
    """
    streams = metadata.audio_streams
    default_position = _default_position(streams)
    seen: dict[str, int] = {}
    tracks = []
    for position, stream in enumerate(streams):
        tracks.append(
            AudioTrackInfo(
                index=stream.index,
                stream_index=position,
                codec=stream.codec_name,
                language=to_playlist_language(stream.language),
                name=_display_name(stream, seen),
                channels=stream.channels or 2,
                sample_rate=stream.sample_rate,
                is_default=position == default_position,
                title=stream.title,
            )
        )
    return tracks


def describe_subtitle_tracks(metadata: MediaMetadata) -> list[SubtitleInfo]:
    """Describe every subtitle stream as a subtitle rendition."""
    streams = metadata.subtitle_streams
    default_position = _default_position(streams)
    seen: dict[str, int] = {}
    tracks = []
    for position, stream in enumerate(streams):
        tracks.append(
            SubtitleInfo(
                index=stream.index,
                stream_index=position,
                language=to_playlist_language(stream.language),
                name=_display_name(stream, seen),
                codec=stream.codec_name,
                is_default=position == default_position,
                is_forced=stream.is_forced,
            )
        )
    if tracks:
        logger.debug(
            "Found %d subtitle track(s) in %s", len(tracks), metadata.file_path
        )
    return tracks
