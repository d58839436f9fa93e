"""HLS playlist generation.

PlaylistGenerator builds master, media (variant/audio) and subtitle
playlist text from descriptors. The build_* methods are pure; the write_*
methods are thin wrappers that create the parent directory and write the
text as UTF-8.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import MappingProxyType

from hlspack.config.processing import DEFAULT_SEGMENT_DURATION
from hlspack.domain.enums import H264Profile, PlaylistType
from hlspack.domain.models import (
    HLSAudioRendition,
    HLSSubtitleRendition,
    HLSVariant,
    Resolution,
    Segment,
)
from hlspack.exceptions import PlaylistWriteError

logger = logging.getLogger(__name__)

DEFAULT_VERSION = 3

# AAC-LC
AUDIO_CODEC = "mp4a.40.2"

# avc1 codec identifiers, level 3.0 / 3.1
H264_CODECS: Mapping[H264Profile, str] = MappingProxyType(
    {
        H264Profile.BASELINE: "avc1.42001e",
        H264Profile.MAIN: "avc1.4d001f",
        H264Profile.HIGH: "avc1.64001f",
    }
)


def parse_bitrate_kbps(bitrate: str) -> float:
    """Convert an ffmpeg-style bitrate string to kilobits per second.

    Accepts "5000k", "5M", "5000" (already kbps) and surrounding whitespace.

    Raises:
        ValueError: If the string is not a recognizable bitrate.
    """
    text = bitrate.strip().lower()
    multiplier = 1.0
    if text.endswith("k"):
        text = text[:-1]
    elif text.endswith("m"):
        text = text[:-1]
        multiplier = 1000.0
    try:
        value = float(text)
    except ValueError as e:
        raise ValueError(f"Invalid bitrate: {bitrate!r}") from e
    if value < 0:
        raise ValueError(f"Invalid bitrate: {bitrate!r}")
    return value * multiplier


def calculate_bandwidth(video_bitrate: str, audio_bitrate: str = "128k") -> int:
    """Return the combined variant bandwidth in bits per second.

    Example:
        >>> calculate_bandwidth("5000k", "128k")
        5128000
    """
    total_kbps = parse_bitrate_kbps(video_bitrate) + parse_bitrate_kbps(audio_bitrate)
    return round(total_kbps) * 1000


def detect_profile(height: int) -> H264Profile:
    """Pick an H.264 profile from the frame height alone."""
    if height >= 1080:
        return H264Profile.HIGH
    if height >= 720:
        return H264Profile.MAIN
    return H264Profile.BASELINE


def generate_codec_string(profile: H264Profile = H264Profile.MAIN) -> str:
    """Return the CODECS attribute value for H.264 video with AAC audio."""
    return f"{H264_CODECS[profile]},{AUDIO_CODEC}"


def variant_playlist_path(name: str) -> str:
    """Return the master-relative playlist path for a variant."""
    return f"video/quality_{name}.m3u8"


def build_variant(
    resolution: Resolution,
    audio_bitrate: str = "128k",
    *,
    frame_rate: float | None = None,
    audio_group: str | None = None,
    subtitle_group: str | None = None,
    profile: H264Profile | None = None,
) -> HLSVariant:
    """Build the HLSVariant descriptor for one ladder rung.

    Args:
        resolution: Ladder rung.
        audio_bitrate: Muxed audio bitrate, counted in the bandwidth.
        frame_rate: Output frame rate, if known.
        audio_group: Alternate audio group to reference.
        subtitle_group: Subtitle group to reference.
        profile: H.264 profile, detected from the height when omitted.

    Returns:
        Variant descriptor with bandwidth and codec derived.
    """
    profile = profile or detect_profile(resolution.height)
    return HLSVariant(
        name=resolution.name,
        width=resolution.width,
        height=resolution.height,
        bandwidth=calculate_bandwidth(resolution.bitrate, audio_bitrate),
        video_bitrate=resolution.bitrate,
        audio_bitrate=audio_bitrate,
        codec=generate_codec_string(profile),
        playlist_path=variant_playlist_path(resolution.name),
        frame_rate=frame_rate,
        audio_group=audio_group,
        subtitle_group=subtitle_group,
    )


def _quoted(value: str) -> str:
    # Quoted-string attribute values cannot contain double quotes or newlines
    cleaned = value.replace('"', "'").replace("\n", " ").replace("\r", " ")
    return f'"{cleaned}"'


def _yes_no(flag: bool) -> str:
    return "YES" if flag else "NO"


class PlaylistGenerator:
    """Builds HLS playlist text.

    Args:
        target_duration: Segment target duration in seconds. The
            #EXT-X-TARGETDURATION of a media playlist is the ceiling of this
            or of the longest segment, whichever is larger.
        version: Value of #EXT-X-VERSION.
        playlist_type: VOD playlists are terminated with #EXT-X-ENDLIST,
            EVENT playlists never are.
    """

    def __init__(
        self,
        target_duration: float = DEFAULT_SEGMENT_DURATION,
        version: int = DEFAULT_VERSION,
        playlist_type: PlaylistType = PlaylistType.VOD,
    ) -> None:
        if target_duration <= 0:
            raise ValueError("target_duration must be positive")
        if version < 1:
            raise ValueError("version must be at least 1")
        self.target_duration = target_duration
        self.version = version
        self.playlist_type = playlist_type

    # -------------------------------------------------------------------------
    # Master playlist
    # -------------------------------------------------------------------------

    def build_master_playlist(
        self,
        variants: Sequence[HLSVariant],
        audio_tracks: Sequence[HLSAudioRendition] | None = None,
        subtitles: Sequence[HLSSubtitleRendition] | None = None,
    ) -> str:
        """Build the master playlist.

        Renditions come first (audio, then subtitles), followed by one
        #EXT-X-STREAM-INF + URI pair per variant in the order supplied.
        """
        audio_tracks = audio_tracks or ()
        subtitles = subtitles or ()

        lines = ["#EXTM3U", f"#EXT-X-VERSION:{self.version}", ""]

        if audio_tracks:
            lines.extend(self._audio_entry(track) for track in audio_tracks)
            lines.append("")

        if subtitles:
            lines.extend(self._subtitle_entry(track) for track in subtitles)
            lines.append("")

        for variant in variants:
            lines.append(
                self._variant_entry(
                    variant,
                    has_audio=bool(audio_tracks),
                    has_subtitles=bool(subtitles),
                )
            )
            lines.append(variant.playlist_path)

        return "\n".join(lines) + "\n"

    def _audio_entry(self, track: HLSAudioRendition) -> str:
        attributes = [
            "TYPE=AUDIO",
            f"GROUP-ID={_quoted(track.group_id)}",
            f"NAME={_quoted(track.name)}",
            f"LANGUAGE={_quoted(track.language)}",
            f"DEFAULT={_yes_no(track.is_default)}",
            "AUTOSELECT=YES",
            f'CHANNELS="{track.channels}"',
            f"URI={_quoted(track.playlist_path)}",
        ]
        return "#EXT-X-MEDIA:" + ",".join(attributes)

    def _subtitle_entry(self, track: HLSSubtitleRendition) -> str:
        attributes = [
            "TYPE=SUBTITLES",
            f"GROUP-ID={_quoted(track.group_id)}",
            f"NAME={_quoted(track.name)}",
            f"LANGUAGE={_quoted(track.language)}",
            f"DEFAULT={_yes_no(track.is_default)}",
            "AUTOSELECT=YES",
            f"URI={_quoted(track.playlist_path)}",
        ]
        if track.is_forced:
            attributes.append("FORCED=YES")
        return "#EXT-X-MEDIA:" + ",".join(attributes)

    def _variant_entry(
        self,
        variant: HLSVariant,
        has_audio: bool,
        has_subtitles: bool,
    ) -> str:
        attributes = [
            f"BANDWIDTH={variant.bandwidth}",
            f"RESOLUTION={variant.width}x{variant.height}",
            f"CODECS={_quoted(variant.codec)}",
        ]
        if variant.frame_rate:
            attributes.append(f"FRAME-RATE={variant.frame_rate:.3f}")
        if has_audio and variant.audio_group:
            attributes.append(f"AUDIO={_quoted(variant.audio_group)}")
        if has_subtitles and variant.subtitle_group:
            attributes.append(f"SUBTITLES={_quoted(variant.subtitle_group)}")
        return "#EXT-X-STREAM-INF:" + ",".join(attributes)

    # -------------------------------------------------------------------------
    # Media playlists
    # -------------------------------------------------------------------------

    def build_media_playlist(self, segments: Sequence[Segment]) -> str:
        """Build a variant or audio playlist from its segments.

        Segments are listed in the order supplied.
        """
        longest = max((segment.duration for segment in segments), default=0.0)
        target = math.ceil(max(self.target_duration, longest))

        lines = [
            "#EXTM3U",
            f"#EXT-X-VERSION:{self.version}",
            f"#EXT-X-TARGETDURATION:{target}",
            "#EXT-X-MEDIA-SEQUENCE:0",
            f"#EXT-X-PLAYLIST-TYPE:{self.playlist_type.value}",
            "",
        ]
        for segment in segments:
            lines.append(f"#EXTINF:{segment.duration:.6f},")
            lines.append(segment.uri)
        if self.playlist_type is PlaylistType.VOD:
            lines.append("#EXT-X-ENDLIST")
        return "\n".join(lines) + "\n"

    def build_subtitle_playlist(self, track_uri: str, total_duration: float) -> str:
        """Build a single-segment VOD playlist pointing at a WebVTT file.

        The playlist is always terminated, whatever the generator's type.
        """
        if total_duration <= 0:
            raise ValueError("total_duration must be positive")
        lines = [
            "#EXTM3U",
            f"#EXT-X-VERSION:{self.version}",
            f"#EXT-X-TARGETDURATION:{math.ceil(total_duration)}",
            "#EXT-X-MEDIA-SEQUENCE:0",
            f"#EXT-X-PLAYLIST-TYPE:{PlaylistType.VOD.value}",
            "",
            f"#EXTINF:{total_duration:.6f},",
            track_uri,
            "#EXT-X-ENDLIST",
        ]
        return "\n".join(lines) + "\n"

    # -------------------------------------------------------------------------
    # File writing
    # -------------------------------------------------------------------------

    def write_master_playlist(
        self,
        output_path: Path,
        variants: Sequence[HLSVariant],
        audio_tracks: Sequence[HLSAudioRendition] | None = None,
        subtitles: Sequence[HLSSubtitleRendition] | None = None,
    ) -> Path:
        """Write the master playlist to output_path."""
        content = self.build_master_playlist(variants, audio_tracks, subtitles)
        return _write_text(output_path, content)

    def write_media_playlist(
        self,
        output_path: Path,
        segments: Sequence[Segment],
    ) -> Path:
        """Write a variant or audio playlist to output_path."""
        return _write_text(output_path, self.build_media_playlist(segments))

    def write_subtitle_playlist(
        self,
        output_path: Path,
        track_uri: str,
        total_duration: float,
    ) -> Path:
        """Write a subtitle playlist to output_path."""
        content = self.build_subtitle_playlist(track_uri, total_duration)
        return _write_text(output_path, content)


def _write_text(output_path: Path, content: str) -> Path:
    """Write playlist text, creating the parent directory.

    Raises:
        PlaylistWriteError: If the directory or file cannot be written.
    """
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise PlaylistWriteError(output_path, str(e)) from e
    logger.debug("Wrote playlist %s (%d bytes)", output_path, len(content))
    return output_path
