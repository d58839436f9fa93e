"""HLS playlist generation, parsing and validation."""

from hlspack.playlist.generator import (
    AUDIO_CODEC,
    H264_CODECS,
    PlaylistGenerator,
    build_variant,
    calculate_bandwidth,
    detect_profile,
    generate_codec_string,
    parse_bitrate_kbps,
    variant_playlist_path,
)
from hlspack.playlist.parser import (
    ParsedPlaylist,
    ParsedRendition,
    ParsedVariant,
    parse_attribute_list,
    parse_playlist,
)
from hlspack.playlist.validator import (
    PlaylistValidation,
    validate_playlist,
    validate_playlist_structure,
)

__all__ = [
    # Generation
    "AUDIO_CODEC",
    "H264_CODECS",
    "PlaylistGenerator",
    "build_variant",
    "calculate_bandwidth",
    "detect_profile",
    "generate_codec_string",
    "parse_bitrate_kbps",
    "variant_playlist_path",
    # Parsing
    "ParsedPlaylist",
    "ParsedRendition",
    "ParsedVariant",
    "parse_attribute_list",
    "parse_playlist",
    # Validation
    "PlaylistValidation",
    "validate_playlist",
    "validate_playlist_structure",
]
