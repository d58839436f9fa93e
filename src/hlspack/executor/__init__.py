"""ffmpeg-backed segmentation and subtitle extraction."""

from hlspack.executor.interface import (
    AudioEncodeConfig,
    ProgressCallback,
    SegmentationService,
    SegmentConfig,
    SubtitleExtractionConfig,
    SubtitleExtractor,
    VideoEncodeConfig,
)
from hlspack.executor.segmenter import FFmpegSegmenter
from hlspack.executor.subtitles import FFmpegSubtitleExtractor

__all__ = [
    "AudioEncodeConfig",
    "FFmpegSegmenter",
    "FFmpegSubtitleExtractor",
    "ProgressCallback",
    "SegmentConfig",
    "SegmentationService",
    "SubtitleExtractionConfig",
    "SubtitleExtractor",
    "VideoEncodeConfig",
]
