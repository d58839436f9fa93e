"""HLS playlist validation.

validate_playlist() is the minimal conformance check: header, version tag
and, for VOD playlists, the end marker. validate_playlist_structure() adds
checks that need a full parse (target duration, segment URIs, group
references) and reports advisory findings as warnings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hlspack.domain.enums import PlaylistType
from hlspack.exceptions import PlaylistParseError
from hlspack.playlist.parser import HEADER_TAG, ParsedPlaylist, parse_playlist

logger = logging.getLogger(__name__)

# Advisory thresholds
_RECOMMENDED_MIN_VERSION = 3
_MIN_AVERAGE_SEGMENT = 2.0
_MAX_AVERAGE_SEGMENT = 10.0
_MAX_BANDWIDTH = 50_000_000
_MAX_SEGMENTS = 1000
_MAX_VARIANTS = 10


@dataclass(frozen=True)
class PlaylistValidation:
    """Outcome of validating playlist text.

    Attributes:
        valid: True iff errors is empty.
        errors: Conformance failures.
        warnings: Advisory findings that do not affect validity.
    """

    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


def _tag_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines()]


def _basic_errors(text: str) -> list[str]:
    lines = _tag_lines(text)
    errors: list[str] = []
    if not text.startswith(HEADER_TAG):
        errors.append(f"Playlist must start with {HEADER_TAG}")
    if not any(line.startswith("#EXT-X-VERSION") for line in lines):
        errors.append("Missing #EXT-X-VERSION tag")
    is_vod = f"#EXT-X-PLAYLIST-TYPE:{PlaylistType.VOD.value}" in lines
    if is_vod and "#EXT-X-ENDLIST" not in lines:
        errors.append("VOD playlist must end with #EXT-X-ENDLIST")
    return errors


def validate_playlist(text: str) -> PlaylistValidation:
    """Check the minimal conformance rules for playlist text.

    A playlist is valid iff it starts with #EXTM3U, contains an
    #EXT-X-VERSION tag and, when it declares #EXT-X-PLAYLIST-TYPE:VOD,
    contains #EXT-X-ENDLIST.

    Args:
        text: Playlist content.

    Returns:
        PlaylistValidation with any errors found.
    """
    errors = _basic_errors(text)
    return PlaylistValidation(valid=not errors, errors=tuple(errors))


def _check_media(
    playlist: ParsedPlaylist,
    errors: list[str],
    warnings: list[str],
) -> None:
    if playlist.target_duration is None:
        errors.append("Media playlist must specify #EXT-X-TARGETDURATION")
    if playlist.media_sequence is not None and playlist.media_sequence < 0:
        errors.append("Media sequence number must be non-negative")
    for line_number in playlist.dangling_extinf_lines:
        errors.append(f"Missing URI after #EXTINF at line {line_number}")
    if not playlist.segments:
        errors.append("Media playlist must contain at least one segment")
        return

    longest = max(segment.duration for segment in playlist.segments)
    target = playlist.target_duration
    if target is not None and round(longest) > target:
        warnings.append(
            f"Segment duration ({longest:.2f}s) exceeds target duration "
            f"({playlist.target_duration}s)"
        )

    # Single-segment playlists (short sources, subtitles) have no meaningful average
    if len(playlist.segments) > 1:
        average = playlist.total_duration / len(playlist.segments)
        if average < _MIN_AVERAGE_SEGMENT:
            warnings.append(f"Average segment duration ({average:.2f}s) is very short")
        elif average > _MAX_AVERAGE_SEGMENT:
            warnings.append(f"Average segment duration ({average:.2f}s) is long")

    if len(playlist.segments) > _MAX_SEGMENTS:
        warnings.append(f"Large number of segments ({len(playlist.segments)})")


def _check_master(
    playlist: ParsedPlaylist,
    errors: list[str],
    warnings: list[str],
) -> None:
    if not playlist.variants:
        errors.append("Master playlist must contain at least one variant stream")
        return

    for number, variant in enumerate(playlist.variants, start=1):
        if variant.bandwidth <= 0:
            errors.append(f"Variant {number}: invalid BANDWIDTH")
        elif variant.bandwidth > _MAX_BANDWIDTH:
            warnings.append(
                f"Variant {number}: very high bandwidth "
                f"({variant.bandwidth / 1_000_000:.1f} Mbps)"
            )
        if not variant.uri:
            errors.append(f"Variant {number}: missing URI after #EXT-X-STREAM-INF")

    audio_groups = {r.group_id for r in playlist.audio_renditions}
    subtitle_groups = {r.group_id for r in playlist.subtitle_renditions}
    for group in sorted({v.audio_group for v in playlist.variants if v.audio_group}):
        if group not in audio_groups:
            errors.append(f'Referenced audio group "{group}" not found')
    for group in sorted(
        {v.subtitle_group for v in playlist.variants if v.subtitle_group}
    ):
        if group not in subtitle_groups:
            errors.append(f'Referenced subtitle group "{group}" not found')

    for rendition in playlist.subtitle_renditions:
        if not rendition.uri:
            errors.append(f'Subtitle rendition "{rendition.name}" has no URI')

    if len(playlist.variants) > _MAX_VARIANTS:
        warnings.append(f"Large number of variants ({len(playlist.variants)})")


def validate_playlist_structure(text: str) -> PlaylistValidation:
    """Validate playlist text beyond the minimal conformance rules.

    Runs validate_playlist() and then parses the text to check
    master group references, variant URIs and bandwidths, or media
    target duration and segment URIs.

    Args:
        text: Playlist content.

    Returns:
        PlaylistValidation with errors and advisory warnings.
    """
    errors = _basic_errors(text)
    warnings: list[str] = []

    try:
        playlist = parse_playlist(text)
    except PlaylistParseError as e:
        errors.append(str(e))
        return PlaylistValidation(valid=False, errors=tuple(errors))

    if playlist.version is not None and playlist.version < _RECOMMENDED_MIN_VERSION:
        warnings.append(
            f"Version {_RECOMMENDED_MIN_VERSION} or higher recommended "
            "for compatibility"
        )

    if playlist.is_master:
        _check_master(playlist, errors, warnings)
    else:
        _check_media(playlist, errors, warnings)

    logger.debug(
        "Validated %s playlist: %d errors, %d warnings",
        playlist.kind,
        len(errors),
        len(warnings),
    )
    return PlaylistValidation(
        valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )
