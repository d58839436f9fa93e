"""Parsing of M3U8 playlist text.

parse_playlist() turns master or media playlist text into a ParsedPlaylist.
It is used to read back the segment lists ffmpeg writes and to run the
structural checks in hlspack.playlist.validator.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Literal

from hlspack.domain.enums import PlaylistType
from hlspack.domain.models import Segment
from hlspack.exceptions import PlaylistParseError

logger = logging.getLogger(__name__)

HEADER_TAG = "#EXTM3U"

# KEY=VALUE pairs in an attribute list; VALUE is either quoted or bare
_ATTRIBUTE_PATTERN = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)')


@dataclass(frozen=True)
class ParsedVariant:
    """An #EXT-X-STREAM-INF entry and its URI."""

    bandwidth: int
    uri: str | None
    resolution: tuple[int, int] | None = None
    codecs: str | None = None
    frame_rate: float | None = None
    audio_group: str | None = None
    subtitle_group: str | None = None


@dataclass(frozen=True)
class ParsedRendition:
    """An #EXT-X-MEDIA entry."""

    type: str  # AUDIO, SUBTITLES, VIDEO, CLOSED-CAPTIONS
    group_id: str
    name: str
    language: str | None = None
    uri: str | None = None
    is_default: bool = False
    is_forced: bool = False
    channels: str | None = None


@dataclass
class ParsedPlaylist:
    """Structured view of a master or media playlist."""

    kind: Literal["master", "media"]
    version: int | None = None
    target_duration: int | None = None
    media_sequence: int | None = None
    playlist_type: PlaylistType | None = None
    end_list: bool = False
    segments: list[Segment] = field(default_factory=list)
    variants: list[ParsedVariant] = field(default_factory=list)
    renditions: list[ParsedRendition] = field(default_factory=list)
    # Line numbers (1-based) of #EXTINF tags not followed by a URI
    dangling_extinf_lines: list[int] = field(default_factory=list)

    @property
    def is_master(self) -> bool:
        return self.kind == "master"

    @property
    def total_duration(self) -> float:
        """Return the sum of all segment durations in seconds."""
        return sum(segment.duration for segment in self.segments)

    @property
    def audio_renditions(self) -> list[ParsedRendition]:
        return [r for r in self.renditions if r.type == "AUDIO"]

    @property
    def subtitle_renditions(self) -> list[ParsedRendition]:
        return [r for r in self.renditions if r.type == "SUBTITLES"]


def parse_attribute_list(value: str) -> dict[str, str]:
    """Parse an HLS attribute list into a dict with quotes stripped.

    Example:
        >>> parse_attribute_list('BANDWIDTH=800000,CODECS="avc1.42001e,mp4a.40.2"')
        {'BANDWIDTH': '800000', 'CODECS': 'avc1.42001e,mp4a.40.2'}
    """
    attributes: dict[str, str] = {}
    for match in _ATTRIBUTE_PATTERN.finditer(value):
        key, raw = match.group(1), match.group(2)
        if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"'):
            raw = raw[1:-1]
        attributes[key] = raw
    return attributes


def _parse_int(value: str, tag: str, line_number: int) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise PlaylistParseError(
            f"Line {line_number}: invalid integer for {tag}: {value!r}"
        ) from e


def _parse_resolution(value: str | None) -> tuple[int, int] | None:
    if not value:
        return None
    width, sep, height = value.partition("x")
    if not sep:
        return None
    try:
        return int(width), int(height)
    except ValueError:
        return None


def _parse_float(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_variant(attributes: dict[str, str], uri: str | None) -> ParsedVariant:
    try:
        bandwidth = int(attributes.get("BANDWIDTH", "0"))
    except ValueError:
        bandwidth = 0
    return ParsedVariant(
        bandwidth=bandwidth,
        uri=uri,
        resolution=_parse_resolution(attributes.get("RESOLUTION")),
        codecs=attributes.get("CODECS"),
        frame_rate=_parse_float(attributes.get("FRAME-RATE")),
        audio_group=attributes.get("AUDIO") or None,
        subtitle_group=attributes.get("SUBTITLES") or None,
    )


def _parse_rendition(attributes: dict[str, str]) -> ParsedRendition:
    return ParsedRendition(
        type=attributes.get("TYPE", ""),
        group_id=attributes.get("GROUP-ID", ""),
        name=attributes.get("NAME", ""),
        language=attributes.get("LANGUAGE"),
        uri=attributes.get("URI"),
        is_default=attributes.get("DEFAULT") == "YES",
        is_forced=attributes.get("FORCED") == "YES",
        channels=attributes.get("CHANNELS"),
    )


def parse_playlist(text: str) -> ParsedPlaylist:
    """Parse M3U8 playlist text.

    A playlist containing any #EXT-X-STREAM-INF tag is a master playlist,
    anything else is a media playlist. Unknown tags and comments are
    ignored.

    Args:
        text: Playlist content.

    Returns:
        ParsedPlaylist describing the document.

    Raises:
        PlaylistParseError: If the text is empty, lacks the #EXTM3U header
            or has a malformed numeric tag.
    """
    lines = [line.strip() for line in text.lstrip("\ufeff").splitlines()]
    if not any(lines):
        raise PlaylistParseError("Empty playlist content")
    if not lines[0].startswith(HEADER_TAG):
        raise PlaylistParseError(f"Playlist must start with {HEADER_TAG}")

    is_master = any(line.startswith("#EXT-X-STREAM-INF:") for line in lines)
    playlist = ParsedPlaylist(kind="master" if is_master else "media")

    pending_duration: float | None = None
    pending_duration_line = 0
    pending_stream: dict[str, str] | None = None

    for line_number, line in enumerate(lines[1:], start=2):
        if not line:
            continue

        if not line.startswith("#"):
            # URI line
            if pending_stream is not None:
                playlist.variants.append(_parse_variant(pending_stream, line))
                pending_stream = None
            elif pending_duration is not None:
                playlist.segments.append(Segment(duration=pending_duration, uri=line))
                pending_duration = None
            else:
                logger.debug(
                    "Ignoring URI without tag at line %d: %s", line_number, line
                )
            continue

        if not line.startswith("#EXT"):
            continue  # comment

        tag, _, value = line.partition(":")

        if pending_duration is not None and tag == "#EXTINF":
            playlist.dangling_extinf_lines.append(pending_duration_line)
            pending_duration = None

        if tag == "#EXT-X-VERSION":
            playlist.version = _parse_int(value, tag, line_number)
        elif tag == "#EXT-X-TARGETDURATION":
            playlist.target_duration = _parse_int(value, tag, line_number)
        elif tag == "#EXT-X-MEDIA-SEQUENCE":
            playlist.media_sequence = _parse_int(value, tag, line_number)
        elif tag == "#EXT-X-PLAYLIST-TYPE":
            try:
                playlist.playlist_type = PlaylistType(value.strip().upper())
            except ValueError as e:
                raise PlaylistParseError(
                    f"Line {line_number}: unknown playlist type {value!r}"
                ) from e
        elif tag == "#EXT-X-ENDLIST":
            playlist.end_list = True
        elif tag == "#EXTINF":
            duration_text = value.split(",", 1)[0]
            duration = _parse_float(duration_text)
            if duration is None:
                raise PlaylistParseError(
                    f"Line {line_number}: invalid segment duration {duration_text!r}"
                )
            pending_duration = duration
            pending_duration_line = line_number
        elif tag == "#EXT-X-STREAM-INF":
            if pending_stream is not None:
                playlist.variants.append(_parse_variant(pending_stream, None))
            pending_stream = parse_attribute_list(value)
        elif tag == "#EXT-X-MEDIA":
            playlist.renditions.append(_parse_rendition(parse_attribute_list(value)))

    if pending_duration is not None:
        playlist.dangling_extinf_lines.append(pending_duration_line)
    if pending_stream is not None:
        playlist.variants.append(_parse_variant(pending_stream, None))

    return playlist
