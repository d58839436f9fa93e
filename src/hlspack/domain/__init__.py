"""Domain models and enums for hlspack."""

from hlspack.domain.enums import H264Profile, MediaType, PlaylistType, ProcessingPhase
from hlspack.domain.models import (
    AudioTrackInfo,
    AudioTrackResult,
    ConvertedSubtitle,
    ExtractedSubtitle,
    HLSAudioRendition,
    HLSSubtitleRendition,
    HLSVariant,
    MediaMetadata,
    PrimaryAudioInfo,
    PrimaryVideoInfo,
    ProcessingError,
    ProcessingPlan,
    ProcessingResult,
    RawSubtitle,
    Resolution,
    ResultMetadata,
    Segment,
    SegmentationProgress,
    SegmentationResult,
    StreamInfo,
    SubtitleInfo,
    SubtitleOutput,
    SubtitleResult,
    VariantResult,
    parse_frame_rate,
)

__all__ = [
    # Enums
    "H264Profile",
    "MediaType",
    "PlaylistType",
    "ProcessingPhase",
    # Probe results
    "MediaMetadata",
    "PrimaryAudioInfo",
    "PrimaryVideoInfo",
    "StreamInfo",
    "parse_frame_rate",
    # Planning
    "AudioTrackInfo",
    "HLSAudioRendition",
    "HLSSubtitleRendition",
    "HLSVariant",
    "ProcessingPlan",
    "Resolution",
    "SubtitleInfo",
    # Segmentation
    "Segment",
    "SegmentationProgress",
    "SegmentationResult",
    # Subtitles
    "ConvertedSubtitle",
    "ExtractedSubtitle",
    "RawSubtitle",
    "SubtitleOutput",
    # Results
    "AudioTrackResult",
    "ProcessingError",
    "ProcessingResult",
    "ResultMetadata",
    "SubtitleResult",
    "VariantResult",
]
