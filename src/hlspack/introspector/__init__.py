"""Media introspection: probe source files for stream metadata."""

from hlspack.introspector.ffprobe import FFprobeIntrospector
from hlspack.introspector.interface import MetadataProvider
from hlspack.introspector.parsers import detect_media_type, parse_ffprobe_output

__all__ = [
    "FFprobeIntrospector",
    "MetadataProvider",
    "detect_media_type",
    "parse_ffprobe_output",
]
