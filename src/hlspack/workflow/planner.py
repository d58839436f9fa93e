"""Processing plan construction.

build_processing_plan() runs once per job, after analysis. It picks the
ladder, derives the variant descriptors the master playlist will list and
the alternate tracks to extract. The plan is immutable; execution never
changes it.
"""

import logging
from pathlib import Path

from hlspack.config.processing import (
    AUDIO_GROUP_ID,
    SUBTITLE_GROUP_ID,
    ProcessingConfig,
)
from hlspack.domain.models import (
    AudioTrackInfo,
    MediaMetadata,
    ProcessingPlan,
    Resolution,
    SubtitleInfo,
)
from hlspack.exceptions import InvalidInputError
from hlspack.ladder import (
    DEFAULT_MIN_HEIGHT,
    DEFAULT_MIN_WIDTH,
    REFERENCE_HEIGHTS,
    LadderConstraints,
    generate_ladder,
)
from hlspack.playlist.generator import build_variant
from hlspack.tracks import describe_audio_tracks, describe_subtitle_tracks

logger = logging.getLogger(__name__)


def ladder_constraints(
    config: ProcessingConfig, target_count: int | None = None
) -> LadderConstraints:
    """Build ladder constraints from the job configuration."""
    floor = config.min_resolution
    return LadderConstraints(
        mode="adaptive",
        quality_preset=config.quality_preset,
        min_width=floor.width if floor else DEFAULT_MIN_WIDTH,
        min_height=floor.height if floor else DEFAULT_MIN_HEIGHT,
        target_count=target_count,
    )


def select_resolutions(
    width: int, height: int, config: ProcessingConfig
) -> list[Resolution]:
    """Choose the ladder for a source frame size.

    Without target_resolutions the preset ladder is used. Otherwise the
    named rungs are picked from the full candidate ladder, in ladder order;
    names the source cannot produce are dropped. If none remain the preset
    ladder is used instead.
    """
    if not config.target_resolutions:
        return generate_ladder(width, height, ladder_constraints(config))

    candidates = generate_ladder(
        width, height, ladder_constraints(config, len(REFERENCE_HEIGHTS))
    )
    by_name = {resolution.name: resolution for resolution in candidates}
    unknown = [name for name in config.target_resolutions if name not in by_name]
    if unknown:
        logger.info(
            "Dropping resolutions not available for %dx%d: %s",
            width,
            height,
            ", ".join(unknown),
        )
    wanted = set(config.target_resolutions)
    selected = [resolution for resolution in candidates if resolution.name in wanted]
    if not selected:
        logger.warning(
            "None of the requested resolutions fit %dx%d, using the %s preset",
            width,
            height,
            config.quality_preset,
        )
        return generate_ladder(width, height, ladder_constraints(config))
    return selected


def build_processing_plan(
    source_path: Path,
    metadata: MediaMetadata,
    config: ProcessingConfig,
) -> ProcessingPlan:
    """Derive the processing plan for one job.

    Args:
        source_path: Source media file.
        metadata: Probe result for source_path.
        config: Job configuration.

    Returns:
        The immutable plan.

    Raises:
        InvalidInputError: If the source has no usable video stream, or its
            frame is too small to derive a ladder from.
    """
    video = metadata.primary_video
    if video is None:
        raise InvalidInputError(f"No video stream in {source_path}")

    try:
        resolutions = select_resolutions(video.width, video.height, config)
    except ValueError as e:
        raise InvalidInputError(f"Cannot build a ladder for {source_path}: {e}") from e

    audio_tracks: list[AudioTrackInfo] = []
    if config.extract_audio_tracks:
        audio_tracks = describe_audio_tracks(metadata)
    subtitles: list[SubtitleInfo] = []
    if config.extract_subtitles:
        subtitles = describe_subtitle_tracks(metadata)

    variants = tuple(
        build_variant(
            resolution,
            config.audio_bitrate,
            frame_rate=video.frame_rate,
            audio_group=AUDIO_GROUP_ID if audio_tracks else None,
            subtitle_group=SUBTITLE_GROUP_ID if subtitles else None,
        )
        for resolution in resolutions
    )

    duration = metadata.duration_seconds
    total_bandwidth = sum(variant.bandwidth for variant in variants)
    estimated_size = int(total_bandwidth * duration / 8)

    plan = ProcessingPlan(
        source_path=source_path,
        metadata=metadata,
        resolutions=tuple(resolutions),
        variants=variants,
        audio_tracks=tuple(audio_tracks),
        subtitles=tuple(subtitles),
        estimated_duration=duration,
        estimated_size=estimated_size,
    )
    logger.info(
        "Planned %d variant(s) [%s], %d audio track(s), %d subtitle(s)",
        len(plan.variants),
        ", ".join(resolution.name for resolution in plan.resolutions),
        len(plan.audio_tracks),
        len(plan.subtitles),
    )
    return plan
