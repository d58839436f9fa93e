"""Packaging job orchestration.

VideoProcessingOrchestrator drives one job through its phases:

    analyzing -> planning -> processing-subtitles -> processing-video
    -> processing-audio -> generating-playlists -> cleanup -> complete

Subtitles are extracted before video so playlist generation reuses the
extracted files. Every phase is bracketed by PHASE_STARTED and
PHASE_COMPLETED (or PHASE_FAILED) events on the job's EventBus.

Failures are split in two classes:
- Job-level (missing input, probe failure, non-video input, planning
  errors, playlist write errors) publish JOB_FAILED and are re-raised.
- Task-level (one variant, audio track or subtitle track) are recorded as
  ProcessingError entries and the job continues. The exception is parallel
  video mode, where the first variant failure aborts the video phase and
  the job returns without variants.
"""

from __future__ import annotations

import logging
import shutil
import threading
import time
import uuid
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TypeVar

from hlspack.config.processing import (
    AUDIO_GROUP_ID,
    SUBTITLE_GROUP_ID,
    ProcessingConfig,
)
from hlspack.domain.enums import MediaType, ProcessingPhase
from hlspack.domain.models import (
    AudioTrackInfo,
    AudioTrackResult,
    ConvertedSubtitle,
    ExtractedSubtitle,
    HLSAudioRendition,
    HLSSubtitleRendition,
    HLSVariant,
    MediaMetadata,
    ProcessingError,
    ProcessingPlan,
    ProcessingResult,
    Resolution,
    ResultMetadata,
    SegmentationProgress,
    SegmentationResult,
    SubtitleResult,
    VariantResult,
)
from hlspack.events import (
    AudioCompletedEvent,
    AudioFailedEvent,
    AudioProgressEvent,
    AudioStartedEvent,
    CleanupCompletedEvent,
    CleanupStartedEvent,
    Event,
    EventBus,
    JobCompletedEvent,
    JobFailedEvent,
    JobStartedEvent,
    PhaseCompletedEvent,
    PhaseFailedEvent,
    PhaseProgressEvent,
    PhaseStartedEvent,
    PlaylistCompletedEvent,
    PlaylistGeneratingEvent,
    SubtitleCompletedEvent,
    SubtitleFailedEvent,
    SubtitleProgressEvent,
    SubtitleStartedEvent,
    VariantCompletedEvent,
    VariantFailedEvent,
    VariantProgressEvent,
    VariantStartedEvent,
    WarningEvent,
)
from hlspack.exceptions import InvalidInputError, MediaFileNotFoundError
from hlspack.executor.interface import (
    AudioEncodeConfig,
    SegmentationService,
    SegmentConfig,
    SubtitleExtractionConfig,
    SubtitleExtractor,
    VideoEncodeConfig,
)
from hlspack.introspector.interface import MetadataProvider
from hlspack.ladder import format_for_ffmpeg
from hlspack.logging.context import job_context
from hlspack.playlist.generator import PlaylistGenerator, detect_profile
from hlspack.progress import ProgressTracker, variant_phase_percent
from hlspack.workflow.planner import build_processing_plan

logger = logging.getLogger(__name__)

MASTER_PLAYLIST_NAME = "master.m3u8"
TEMP_DIR_NAME = ".tmp"

# Alternate audio renditions are always stereo AAC
AUDIO_CHANNELS = 2

_R = TypeVar("_R", HLSAudioRendition, HLSSubtitleRendition)


@dataclass(frozen=True)
class JobPaths:
    """On-disk layout of one job's output."""

    root: Path
    video: Path
    audio: Path
    subtitles: Path
    custom: Path
    temp: Path

    @classmethod
    def for_job(cls, config: ProcessingConfig, job_id: str) -> JobPaths:
        root = config.output_base_dir / job_id
        if config.temp_dir is not None:
            temp = config.temp_dir / job_id
        else:
            temp = root / TEMP_DIR_NAME
        return cls(
            root=root,
            video=root / "video",
            audio=root / "audio",
            subtitles=root / "subtitles",
            custom=root / "custom",
            temp=temp,
        )

    @property
    def master_playlist(self) -> Path:
        return self.root / MASTER_PLAYLIST_NAME

    def create(self) -> None:
        """Create every job directory."""
        for directory in (
            self.root,
            self.video,
            self.audio,
            self.subtitles,
            self.custom,
            self.temp,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def relative(self, path: Path) -> str:
        """Return path relative to the master playlist, with "/" separators."""
        return path.relative_to(self.root).as_posix()


@dataclass(frozen=True)
class _VariantOutput:
    variant: HLSVariant
    resolution: Resolution
    segmentation: SegmentationResult


@dataclass(frozen=True)
class _AudioOutput:
    track: AudioTrackInfo
    segmentation: SegmentationResult


class _VideoPhaseAborted(Exception):
    """Raised inside the video phase when parallel mode fails fast."""


@dataclass
class _JobState:
    """Mutable state of one running job.

    errors is shared with parallel variant workers and guarded by lock.
    aborted is set when parallel mode fails fast; workers still running
    stop publishing once it is set.
    """

    job_id: str
    source_path: Path
    config: ProcessingConfig
    tracker: ProgressTracker
    started: float
    phase: ProcessingPhase = ProcessingPhase.ANALYZING
    paths: JobPaths | None = None
    errors: list[ProcessingError] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)
    aborted: threading.Event = field(default_factory=threading.Event)

    def record_error(
        self, stage: str, message: str, variant: str | None = None
    ) -> None:
        with self.lock:
            self.errors.append(
                ProcessingError(stage=stage, message=message, variant=variant)
            )

    def error_snapshot(self) -> list[ProcessingError]:
        with self.lock:
            return list(self.errors)

    @property
    def output(self) -> JobPaths:
        if self.paths is None:
            raise RuntimeError("Job directories are created during planning")
        return self.paths


def _with_single_default(renditions: list[_R]) -> list[_R]:
    """Keep the first rendition flagged default, or flag the first one."""
    if not renditions:
        return renditions
    default_index = next(
        (i for i, rendition in enumerate(renditions) if rendition.is_default), 0
    )
    return [
        replace(rendition, is_default=i == default_index)
        for i, rendition in enumerate(renditions)
    ]


def _directory_size(path: Path) -> int:
    if not path.exists():
        return 0
    return sum(item.stat().st_size for item in path.rglob("*") if item.is_file())


class VideoProcessingOrchestrator:
    """Runs packaging jobs.

    Args:
        introspector: Probes the source file.
        segmenter: Encodes and segments variants and audio tracks.
        subtitle_extractor: Extracts subtitle tracks.
        bus: Event bus jobs publish to. A private bus is created if omitted.
        generator: Playlist generator. By default one is created per job
            with the job's segment duration as target duration.
        clock: Monotonic clock in seconds, injectable for tests.
    """

    def __init__(
        self,
        introspector: MetadataProvider,
        segmenter: SegmentationService,
        subtitle_extractor: SubtitleExtractor,
        bus: EventBus | None = None,
        generator: PlaylistGenerator | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._introspector = introspector
        self._segmenter = segmenter
        self._subtitle_extractor = subtitle_extractor
        self._bus = bus if bus is not None else EventBus()
        self._generator = generator
        self._clock = clock

    @property
    def bus(self) -> EventBus:
        return self._bus

    def process(
        self,
        source_path: Path,
        config: ProcessingConfig,
        job_id: str | None = None,
    ) -> ProcessingResult:
        """Package source_path as HLS under config.output_base_dir/<job_id>.

        Args:
            source_path: Source media file.
            config: Job configuration.
            job_id: Output directory name and event key. Generated if None.

        Returns:
            The job result. result.success is False if any task failed.

        Raises:
            MediaFileNotFoundError: If source_path does not exist.
            MediaIntrospectionError: If the source cannot be probed.
            InvalidInputError: If the source has no video stream.
            PlaylistWriteError: If a playlist cannot be written.
        """
        job_id = job_id or uuid.uuid4().hex
        tracker = ProgressTracker(job_id, clock=self._clock)
        detach = tracker.attach(self._bus)
        job = _JobState(
            job_id=job_id,
            source_path=Path(source_path),
            config=config,
            tracker=tracker,
            started=self._clock(),
        )
        try:
            with job_context(job_id):
                return self._run(job)
        finally:
            detach()

    # -------------------------------------------------------------------------
    # Job flow
    # -------------------------------------------------------------------------

    def _run(self, job: _JobState) -> ProcessingResult:
        config = job.config
        self._publish(
            JobStartedEvent(
                job_id=job.job_id,
                source_path=job.source_path,
                parallel=config.parallel,
            )
        )
        logger.info("Starting job for %s", job.source_path)

        try:
            with self._phase(job, ProcessingPhase.ANALYZING):
                metadata = self._analyze(job)

            with self._phase(job, ProcessingPhase.PLANNING):
                plan = build_processing_plan(job.source_path, metadata, config)
                job.paths = JobPaths.for_job(config, job.job_id)
                job.paths.create()

            subtitles: list[ExtractedSubtitle] = []
            if plan.subtitles:
                with self._phase(job, ProcessingPhase.PROCESSING_SUBTITLES):
                    subtitles = self._process_subtitles(job, plan)

            try:
                with self._phase(job, ProcessingPhase.PROCESSING_VIDEO):
                    variant_outputs = self._process_video(job, plan)
            except _VideoPhaseAborted as e:
                return self._aborted_result(job, plan, str(e))

            audio_outputs: list[_AudioOutput] = []
            if plan.audio_tracks:
                with self._phase(job, ProcessingPhase.PROCESSING_AUDIO):
                    audio_outputs = self._process_audio(job, plan)

            with self._phase(job, ProcessingPhase.GENERATING_PLAYLISTS):
                generator = self._generator or PlaylistGenerator(
                    target_duration=config.segment_duration
                )
                master, audio_results, subtitle_results = self._generate_playlists(
                    job, plan, generator, variant_outputs, audio_outputs, subtitles
                )
                if config.keep_original:
                    self._keep_original(job)

            if config.cleanup_temp:
                with self._phase(job, ProcessingPhase.CLEANUP):
                    self._cleanup(job)

            with self._phase(job, ProcessingPhase.COMPLETE):
                variant_results = [
                    VariantResult(
                        name=output.variant.name,
                        resolution=format_for_ffmpeg(output.resolution),
                        playlist_path=output.segmentation.playlist_path,
                        segment_count=output.segmentation.segment_count,
                        size=output.segmentation.file_size,
                        bitrate=output.variant.video_bitrate,
                    )
                    for output in variant_outputs
                ]
                result = self._build_result(
                    job, plan, master, variant_results, audio_results, subtitle_results
                )
        except Exception as e:
            logger.error("Job failed during %s: %s", job.phase.value, e)
            self._publish(
                JobFailedEvent(job_id=job.job_id, stage=job.phase.value, error=str(e))
            )
            raise

        self._publish_completed(result)
        return result

    @contextmanager
    def _phase(self, job: _JobState, phase: ProcessingPhase) -> Iterator[None]:
        job.phase = phase
        self._publish(PhaseStartedEvent(job_id=job.job_id, phase=phase))
        try:
            yield
        except Exception as e:
            self._publish(
                PhaseFailedEvent(job_id=job.job_id, phase=phase, error=str(e))
            )
            raise
        self._publish(PhaseCompletedEvent(job_id=job.job_id, phase=phase))

    def _publish(self, event: Event) -> None:
        self._bus.publish(event)

    # -------------------------------------------------------------------------
    # Analyzing
    # -------------------------------------------------------------------------

    def _analyze(self, job: _JobState) -> MediaMetadata:
        if not job.source_path.exists():
            raise MediaFileNotFoundError(job.source_path)
        metadata = self._introspector.get_metadata(job.source_path)
        if metadata.media_type != MediaType.VIDEO or metadata.primary_video is None:
            raise InvalidInputError(
                f"{job.source_path} is not a video "
                f"(detected {metadata.media_type.value})"
            )
        video = metadata.primary_video
        logger.info(
            "Source %dx%d %s, %.1fs, %d audio, %d subtitle stream(s)",
            video.width,
            video.height,
            video.codec or "unknown codec",
            metadata.duration_seconds,
            len(metadata.audio_streams),
            len(metadata.subtitle_streams),
        )
        return metadata

    # -------------------------------------------------------------------------
    # Subtitles
    # -------------------------------------------------------------------------

    def _process_subtitles(
        self, job: _JobState, plan: ProcessingPlan
    ) -> list[ExtractedSubtitle]:
        extraction_config = SubtitleExtractionConfig(output_dir=job.output.subtitles)
        total = len(plan.subtitles)
        extracted: list[ExtractedSubtitle] = []

        for position, track in enumerate(plan.subtitles):
            task = f"subtitle:{track.language}:{track.stream_index}"
            with job_context(job.job_id, task):
                self._publish(
                    SubtitleStartedEvent(
                        job_id=job.job_id,
                        language=track.language,
                        track_index=track.stream_index,
                    )
                )
                self._publish(
                    SubtitleProgressEvent(
                        job_id=job.job_id, language=track.language, action="extracting"
                    )
                )
                try:
                    subtitle = self._subtitle_extractor.extract_track(
                        job.source_path, track, extraction_config
                    )
                except Exception as e:
                    logger.warning("Subtitle track %s failed: %s", task, e)
                    job.record_error("subtitles", str(e), task)
                    self._publish(
                        SubtitleFailedEvent(
                            job_id=job.job_id, language=track.language, error=str(e)
                        )
                    )
                else:
                    extracted.append(subtitle)
                    self._publish(
                        SubtitleCompletedEvent(
                            job_id=job.job_id,
                            language=track.language,
                            format=subtitle.output.format,
                            path=subtitle.output.path,
                        )
                    )
            self._publish(
                PhaseProgressEvent(
                    job_id=job.job_id,
                    phase=ProcessingPhase.PROCESSING_SUBTITLES,
                    percent=variant_phase_percent(position, total, 100.0),
                )
            )
        return extracted

    # -------------------------------------------------------------------------
    # Video
    # -------------------------------------------------------------------------

    def _process_video(
        self, job: _JobState, plan: ProcessingPlan
    ) -> list[_VariantOutput]:
        if job.config.parallel:
            return self._process_video_parallel(job, plan)

        outputs = []
        for index, (variant, resolution) in enumerate(
            zip(plan.variants, plan.resolutions)
        ):
            try:
                with job_context(job.job_id, variant.name):
                    outputs.append(
                        self._segment_variant(job, plan, index, variant, resolution)
                    )
            except Exception as e:
                self._record_variant_failure(job, variant, e)
        return outputs

    def _process_video_parallel(
        self, job: _JobState, plan: ProcessingPlan
    ) -> list[_VariantOutput]:
        """Segment all variants concurrently; the first failure aborts."""
        pool = ThreadPoolExecutor(
            max_workers=len(plan.variants),
            thread_name_prefix=f"hlspack-{job.job_id[:8]}",
        )
        futures: dict[Future[_VariantOutput], HLSVariant] = {}
        aborted = False
        try:
            for index, (variant, resolution) in enumerate(
                zip(plan.variants, plan.resolutions)
            ):
                future = pool.submit(
                    self._segment_variant_in_context,
                    job,
                    plan,
                    index,
                    variant,
                    resolution,
                )
                futures[future] = variant

            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [
                future
                for future in futures
                if future in done and future.exception() is not None
            ]
            if failed:
                aborted = True
                job.aborted.set()
                for future in failed:
                    error = future.exception()
                    assert error is not None
                    self._record_variant_failure(job, futures[future], error)
                first = futures[failed[0]]
                raise _VideoPhaseAborted(
                    f"Variant {first.name} failed in parallel mode: "
                    f"{failed[0].exception()}"
                )

            return [future.result() for future in futures]
        finally:
            # Pending variants are dropped; running ones finish silently
            pool.shutdown(wait=True, cancel_futures=aborted)

    def _segment_variant_in_context(
        self,
        job: _JobState,
        plan: ProcessingPlan,
        index: int,
        variant: HLSVariant,
        resolution: Resolution,
    ) -> _VariantOutput:
        if job.aborted.is_set():
            raise _VideoPhaseAborted(f"Variant {variant.name} not started")
        with job_context(job.job_id, variant.name):
            return self._segment_variant(job, plan, index, variant, resolution)

    def _segment_variant(
        self,
        job: _JobState,
        plan: ProcessingPlan,
        index: int,
        variant: HLSVariant,
        resolution: Resolution,
    ) -> _VariantOutput:
        config = job.config
        total = len(plan.variants)
        playlist_name = Path(variant.playlist_path).name
        self._publish(
            VariantStartedEvent(
                job_id=job.job_id,
                variant=variant.name,
                resolution=format_for_ffmpeg(resolution),
                index=index,
                total=total,
            )
        )

        segment_config = SegmentConfig(
            output_dir=job.output.video,
            playlist_name=playlist_name,
            segment_pattern=f"{Path(playlist_name).stem}_%03d.ts",
            segment_duration=config.segment_duration,
            source_duration=plan.estimated_duration,
        )
        encode_config = VideoEncodeConfig(
            resolution=resolution,
            preset=config.video_preset,
            profile=detect_profile(resolution.height),
            frame_rate=variant.frame_rate,
            include_audio=not plan.audio_tracks
            and plan.metadata.primary_audio is not None,
            audio_bitrate=variant.audio_bitrate,
            audio_sample_rate=config.audio_sample_rate,
        )

        def on_progress(sample: SegmentationProgress) -> None:
            if job.aborted.is_set():
                return
            self._publish(
                VariantProgressEvent(
                    job_id=job.job_id,
                    variant=variant.name,
                    percent=sample.percent,
                    fps=sample.fps,
                    speed=sample.speed,
                    bitrate=sample.bitrate,
                    eta=sample.eta,
                )
            )
            self._publish(
                PhaseProgressEvent(
                    job_id=job.job_id,
                    phase=ProcessingPhase.PROCESSING_VIDEO,
                    percent=self._video_phase_percent(job, plan, index, sample.percent),
                    message=variant.name,
                )
            )

        result = self._segmenter.segment_video(
            job.source_path, segment_config, encode_config, on_progress
        )
        if job.aborted.is_set():
            return _VariantOutput(
                variant=variant, resolution=resolution, segmentation=result
            )
        self._publish(
            VariantCompletedEvent(
                job_id=job.job_id,
                variant=variant.name,
                resolution=format_for_ffmpeg(resolution),
                playlist_path=result.playlist_path,
                segment_count=result.segment_count,
                file_size=result.file_size,
                duration=result.duration,
            )
        )
        return _VariantOutput(
            variant=variant, resolution=resolution, segmentation=result
        )

    def _video_phase_percent(
        self, job: _JobState, plan: ProcessingPlan, index: int, percent: float
    ) -> float:
        total = len(plan.variants)
        if not job.config.parallel:
            return variant_phase_percent(index, total, percent)
        # Concurrent variants advance together; average their completion
        done = job.tracker.snapshot().variant_percent
        return sum(done.get(variant.name, 0.0) for variant in plan.variants) / total

    def _record_variant_failure(
        self, job: _JobState, variant: HLSVariant, error: BaseException
    ) -> None:
        logger.warning("Variant %s failed: %s", variant.name, error)
        job.record_error("video", str(error), variant.name)
        self._publish(
            VariantFailedEvent(
                job_id=job.job_id, variant=variant.name, error=str(error)
            )
        )

    # -------------------------------------------------------------------------
    # Audio
    # -------------------------------------------------------------------------

    def _process_audio(
        self, job: _JobState, plan: ProcessingPlan
    ) -> list[_AudioOutput]:
        config = job.config
        total = len(plan.audio_tracks)
        audio_config = AudioEncodeConfig(
            bitrate=config.audio_bitrate,
            sample_rate=config.audio_sample_rate,
            channels=AUDIO_CHANNELS,
        )
        outputs: list[_AudioOutput] = []

        for position, track in enumerate(plan.audio_tracks):
            stem = f"audio_{track.language}_{track.stream_index}"
            task = f"audio:{track.language}:{track.stream_index}"
            segment_config = SegmentConfig(
                output_dir=job.output.audio,
                playlist_name=f"{stem}.m3u8",
                segment_pattern=f"{stem}_%03d.ts",
                segment_duration=config.segment_duration,
                source_duration=plan.estimated_duration,
            )

            def on_progress(
                sample: SegmentationProgress,
                track: AudioTrackInfo = track,
                position: int = position,
            ) -> None:
                self._publish(
                    AudioProgressEvent(
                        job_id=job.job_id,
                        language=track.language,
                        track_index=track.stream_index,
                        percent=sample.percent,
                    )
                )
                self._publish(
                    PhaseProgressEvent(
                        job_id=job.job_id,
                        phase=ProcessingPhase.PROCESSING_AUDIO,
                        percent=variant_phase_percent(position, total, sample.percent),
                        message=track.name,
                    )
                )

            with job_context(job.job_id, task):
                self._publish(
                    AudioStartedEvent(
                        job_id=job.job_id,
                        language=track.language,
                        track_index=track.stream_index,
                    )
                )
                try:
                    result = self._segmenter.segment_audio(
                        job.source_path,
                        segment_config,
                        audio_config,
                        track.stream_index,
                        on_progress,
                    )
                except Exception as e:
                    logger.warning("Audio track %s failed: %s", task, e)
                    job.record_error("audio", str(e), task)
                    self._publish(
                        AudioFailedEvent(
                            job_id=job.job_id,
                            language=track.language,
                            track_index=track.stream_index,
                            error=str(e),
                        )
                    )
                    continue

            outputs.append(_AudioOutput(track=track, segmentation=result))
            self._publish(
                AudioCompletedEvent(
                    job_id=job.job_id,
                    language=track.language,
                    track_index=track.stream_index,
                    playlist_path=result.playlist_path,
                )
            )
        return outputs

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    def _generate_playlists(
        self,
        job: _JobState,
        plan: ProcessingPlan,
        generator: PlaylistGenerator,
        variant_outputs: Sequence[_VariantOutput],
        audio_outputs: Sequence[_AudioOutput],
        subtitles: Sequence[ExtractedSubtitle],
    ) -> tuple[Path | None, list[AudioTrackResult], list[SubtitleResult]]:
        paths = job.output

        for output in variant_outputs:
            self._write_media_playlist(job, generator, "variant", output.segmentation)
        for output in audio_outputs:
            self._write_media_playlist(job, generator, "audio", output.segmentation)

        audio_renditions = _with_single_default(
            [
                HLSAudioRendition(
                    group_id=AUDIO_GROUP_ID,
                    name=output.track.name,
                    language=output.track.language,
                    playlist_path=paths.relative(output.segmentation.playlist_path),
                    channels=AUDIO_CHANNELS,
                    is_default=output.track.is_default,
                )
                for output in audio_outputs
            ]
        )
        audio_results = [
            AudioTrackResult(
                language=output.track.language,
                name=output.track.name,
                playlist_path=output.segmentation.playlist_path,
                size=output.segmentation.file_size,
                is_default=rendition.is_default,
            )
            for output, rendition in zip(audio_outputs, audio_renditions)
        ]

        subtitle_results = self._subtitle_playlists(job, plan, generator, subtitles)
        subtitle_renditions = _with_single_default(
            [
                HLSSubtitleRendition(
                    group_id=SUBTITLE_GROUP_ID,
                    name=result.name,
                    language=result.language,
                    playlist_path=paths.relative(result.playlist_path),
                    is_default=result.is_default,
                    is_forced=result.is_forced,
                )
                for result in subtitle_results
                if result.playlist_path is not None
            ]
        )

        if not variant_outputs:
            logger.warning("No variant succeeded, master playlist not written")
            self._publish(
                WarningEvent(
                    job_id=job.job_id,
                    message="No variant succeeded, master playlist not written",
                )
            )
            return None, audio_results, subtitle_results

        self._publish(
            PlaylistGeneratingEvent(job_id=job.job_id, playlist_kind="master")
        )
        master = generator.write_master_playlist(
            paths.master_playlist,
            [output.variant for output in variant_outputs],
            audio_renditions,
            subtitle_renditions,
        )
        self._publish(
            PlaylistCompletedEvent(
                job_id=job.job_id, playlist_kind="master", path=master
            )
        )
        return master, audio_results, subtitle_results

    def _write_media_playlist(
        self,
        job: _JobState,
        generator: PlaylistGenerator,
        kind: str,
        segmentation: SegmentationResult,
    ) -> None:
        self._publish(PlaylistGeneratingEvent(job_id=job.job_id, playlist_kind=kind))
        path = generator.write_media_playlist(
            segmentation.playlist_path, segmentation.segments
        )
        self._publish(
            PlaylistCompletedEvent(job_id=job.job_id, playlist_kind=kind, path=path)
        )

    def _subtitle_playlists(
        self,
        job: _JobState,
        plan: ProcessingPlan,
        generator: PlaylistGenerator,
        subtitles: Sequence[ExtractedSubtitle],
    ) -> list[SubtitleResult]:
        results = []
        for subtitle in subtitles:
            track = subtitle.track
            output = subtitle.output
            playlist_path = None
            if not isinstance(output, ConvertedSubtitle):
                message = (
                    f"Subtitle '{track.name}' kept as {output.format}; "
                    "it cannot be played through HLS"
                )
                self._publish(
                    WarningEvent(
                        job_id=job.job_id,
                        message=message,
                        details={"language": track.language, "path": str(output.path)},
                    )
                )
            elif plan.estimated_duration <= 0:
                self._publish(
                    WarningEvent(
                        job_id=job.job_id,
                        message=(
                            f"Unknown duration, no playlist for subtitle '{track.name}'"
                        ),
                    )
                )
            else:
                self._publish(
                    SubtitleProgressEvent(
                        job_id=job.job_id,
                        language=track.language,
                        action="generating-playlist",
                    )
                )
                self._publish(
                    PlaylistGeneratingEvent(job_id=job.job_id, playlist_kind="subtitle")
                )
                playlist_path = generator.write_subtitle_playlist(
                    output.path.with_suffix(".m3u8"),
                    output.path.name,
                    plan.estimated_duration,
                )
                self._publish(
                    PlaylistCompletedEvent(
                        job_id=job.job_id, playlist_kind="subtitle", path=playlist_path
                    )
                )
            results.append(
                SubtitleResult(
                    language=track.language,
                    name=track.name,
                    output=output,
                    playlist_path=playlist_path,
                    is_default=track.is_default,
                    is_forced=track.is_forced,
                )
            )
        return results

    # -------------------------------------------------------------------------
    # Finishing
    # -------------------------------------------------------------------------

    def _keep_original(self, job: _JobState) -> None:
        target = job.output.custom / job.source_path.name
        try:
            shutil.copy2(job.source_path, target)
        except OSError as e:
            logger.warning("Could not copy original to %s: %s", target, e)
            self._publish(
                WarningEvent(
                    job_id=job.job_id,
                    message=f"Could not keep original: {e}",
                    details={"path": str(target)},
                )
            )
        else:
            logger.info("Kept original at %s", target)

    def _cleanup(self, job: _JobState) -> None:
        temp = job.output.temp
        self._publish(CleanupStartedEvent(job_id=job.job_id, path=temp))
        if temp.exists():
            try:
                shutil.rmtree(temp)
            except OSError as e:
                logger.warning("Could not remove temp directory %s: %s", temp, e)
                self._publish(
                    WarningEvent(
                        job_id=job.job_id,
                        message=f"Cleanup failed: {e}",
                        details={"path": str(temp)},
                    )
                )
        self._publish(CleanupCompletedEvent(job_id=job.job_id, path=temp))

    def _build_result(
        self,
        job: _JobState,
        plan: ProcessingPlan,
        master: Path | None,
        variants: list[VariantResult],
        audio_tracks: list[AudioTrackResult],
        subtitles: list[SubtitleResult],
    ) -> ProcessingResult:
        original_size = plan.metadata.size_bytes
        processed_size = _directory_size(job.output.root)
        return ProcessingResult(
            video_id=job.job_id,
            master_playlist=master,
            variants=variants,
            audio_tracks=audio_tracks,
            subtitles=subtitles,
            metadata=ResultMetadata(
                original_file=job.source_path,
                duration=plan.estimated_duration,
                original_size=original_size,
                processed_size=processed_size,
                compression_ratio=(
                    processed_size / original_size if original_size else 0.0
                ),
                processing_time=max(0.0, self._clock() - job.started),
            ),
            errors=job.error_snapshot(),
        )

    def _aborted_result(
        self, job: _JobState, plan: ProcessingPlan, error: str
    ) -> ProcessingResult:
        logger.error("Video phase aborted: %s", error)
        self._publish(
            JobFailedEvent(
                job_id=job.job_id,
                stage=ProcessingPhase.PROCESSING_VIDEO.value,
                error=error,
            )
        )
        return self._build_result(job, plan, None, [], [], [])

    def _publish_completed(self, result: ProcessingResult) -> None:
        self._publish(
            JobCompletedEvent(
                job_id=result.video_id,
                success=result.success,
                master_playlist=result.master_playlist,
                variants_processed=len(result.variants),
                audio_tracks_processed=len(result.audio_tracks),
                subtitles_processed=len(result.subtitles),
                error_count=len(result.errors),
                total_size=result.metadata.processed_size,
                processing_time=result.metadata.processing_time,
            )
        )
        logger.info(
            "Job finished: %d variant(s), %d error(s), %.1fs",
            len(result.variants),
            len(result.errors),
            result.metadata.processing_time,
        )
