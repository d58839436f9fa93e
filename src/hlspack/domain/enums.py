"""Domain enums for hlspack.

This module contains the enums shared across hlspack modules for media
classification, processing phases and playlist types.
"""

from enum import Enum


class MediaType(Enum):
    """Primary classification of a probed media file."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    SUBTITLE = "subtitle"
    UNKNOWN = "unknown"


class ProcessingPhase(Enum):
    """Phases of a packaging job, in execution order.

    Subtitles are processed before video so that playlist generation can
    reuse the extracted subtitle files.
    """

    ANALYZING = "analyzing"
    PLANNING = "planning"
    PROCESSING_SUBTITLES = "processing-subtitles"
    PROCESSING_VIDEO = "processing-video"
    PROCESSING_AUDIO = "processing-audio"
    GENERATING_PLAYLISTS = "generating-playlists"
    CLEANUP = "cleanup"
    COMPLETE = "complete"


class PlaylistType(Enum):
    """Value of the #EXT-X-PLAYLIST-TYPE tag."""

    VOD = "VOD"  # On-demand, always terminated with #EXT-X-ENDLIST
    EVENT = "EVENT"  # Growing playlist, never terminated


class H264Profile(Enum):
    """H.264 profile tiers used for variant codec strings."""

    BASELINE = "baseline"
    MAIN = "main"
    HIGH = "high"
