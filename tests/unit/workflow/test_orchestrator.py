"""Unit tests for VideoProcessingOrchestrator using in-memory collaborators."""

import threading
import time
from dataclasses import replace
from pathlib import Path

import pytest

from hlspack.domain.enums import MediaType, ProcessingPhase
from hlspack.domain.models import (
    ExtractedSubtitle,
    RawSubtitle,
    SegmentationProgress,
)
from hlspack.events import EventBus, EventKind
from hlspack.exceptions import InvalidInputError, MediaFileNotFoundError
from hlspack.playlist.parser import parse_playlist
from hlspack.progress import ProgressTracker
from hlspack.workflow import JobPaths, VideoProcessingOrchestrator
from hlspack.workflow.orchestrator import _JobState


class RecordingBus(EventBus):
    """EventBus that keeps every published event."""

    def __init__(self) -> None:
        super().__init__()
        self.events = []
        self.subscribe_all(self.events.append)

    def kinds(self):
        return [event.kind for event in self.events]

    def of_kind(self, kind):
        return [event for event in self.events if event.kind == kind]


class RawSubtitleExtractor:
    """Keeps every track in its original bitmap format."""

    def extract_track(self, source, subtitle, config):
        config.output_dir.mkdir(parents=True, exist_ok=True)
        path = config.output_dir / f"{config.output_stem(subtitle)}.sup"
        path.write_bytes(b"PG")
        return ExtractedSubtitle(
            track=subtitle, output=RawSubtitle(format="pgs", path=path)
        )

    def extract_embedded(self, source, config, extract_all=True):
        raise NotImplementedError


class LockstepSegmenter:
    """Reports one fixed percent per variant, then waits for every sibling.

    Progress callbacks run one at a time, so the phase progress they drive
    is deterministic whatever order the worker threads start in.
    """

    def __init__(self, inner, percents: dict[str, float]) -> None:
        self.inner = inner
        self.percents = percents
        self._lock = threading.Lock()
        self._barrier = threading.Barrier(len(percents), timeout=5)

    def segment_video(
        self, source, segment_config, encode_config, progress_callback=None
    ):
        percent = self.percents[encode_config.resolution.name]
        with self._lock:
            progress_callback(SegmentationProgress(percent=percent))
        self._barrier.wait()
        return self.inner.segment_video(source, segment_config, encode_config)

    def segment_audio(self, *args, **kwargs):
        return self.inner.segment_audio(*args, **kwargs)


class SlowSiblingSegmenter:
    """Fails the variants the inner fake fails at once; delays the rest."""

    def __init__(self, inner, delay: float = 0.3) -> None:
        self.inner = inner
        self.delay = delay

    def segment_video(
        self, source, segment_config, encode_config, progress_callback=None
    ):
        if encode_config.resolution.name not in self.inner.fail_variants:
            time.sleep(self.delay)
        return self.inner.segment_video(
            source, segment_config, encode_config, progress_callback
        )

    def segment_audio(self, *args, **kwargs):
        return self.inner.segment_audio(*args, **kwargs)


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def build(
    bus,
    source_file,
    make_metadata,
    fake_introspector,
    fake_segmenter,
    fake_subtitle_extractor,
):
    """Build an orchestrator around fakes for a probe of source_file."""

    def _build(segmenter=None, subtitle_extractor=None, metadata=None, **meta_kw):
        if metadata is None:
            metadata = make_metadata(path=source_file, **meta_kw)
        return VideoProcessingOrchestrator(
            introspector=fake_introspector(metadata),
            segmenter=segmenter or fake_segmenter(),
            subtitle_extractor=subtitle_extractor or fake_subtitle_extractor(),
            bus=bus,
            clock=lambda: 10.0,
        )

    return _build


class TestJobPaths:
    def test_layout(self, make_config, output_dir):
        paths = JobPaths.for_job(make_config(), "job1")
        assert paths.root == output_dir / "job1"
        assert paths.video == output_dir / "job1" / "video"
        assert paths.temp == output_dir / "job1" / ".tmp"
        assert paths.master_playlist == output_dir / "job1" / "master.m3u8"
        assert paths.relative(paths.audio / "a.m3u8") == "audio/a.m3u8"

    def test_external_temp_dir(self, make_config, temp_dir):
        paths = JobPaths.for_job(make_config(temp_dir=temp_dir / "scratch"), "job1")
        assert paths.temp == temp_dir / "scratch" / "job1"


class TestJobState:
    @pytest.fixture
    def job(self, make_config):
        return _JobState(
            job_id="job1",
            source_path=Path("/media/movie.mkv"),
            config=make_config(),
            tracker=ProgressTracker("job1"),
            started=0.0,
        )

    def test_output_before_planning_raises(self, job):
        with pytest.raises(RuntimeError, match="planning"):
            _ = job.output

    def test_not_aborted_initially(self, job):
        assert not job.aborted.is_set()


class TestVideoOnlyJob:
    """A 1080p source without audio or subtitle extraction."""

    def test_master_lists_every_rung(self, build, make_config, source_file):
        result = build().process(source_file, make_config(), job_id="job1")

        assert result.success
        assert result.video_id == "job1"
        assert [v.name for v in result.variants] == ["1080p", "720p", "480p", "360p"]
        text = result.master_playlist.read_text(encoding="utf-8")
        assert "#EXT-X-MEDIA" not in text
        assert text.count("#EXT-X-STREAM-INF:") == 4
        lines = text.splitlines()
        first = lines.index(
            "#EXT-X-STREAM-INF:BANDWIDTH=5128000,RESOLUTION=1920x1080,"
            'CODECS="avc1.64001f,mp4a.40.2",FRAME-RATE=25.000'
        )
        assert lines[first + 1] == "video/quality_1080p.m3u8"

    def test_variant_playlists_rewritten(self, build, make_config, source_file):
        result = build().process(source_file, make_config(), job_id="job1")

        variant = result.variants[1]
        assert variant.resolution == "1280x720"
        assert variant.segment_count == 3
        assert variant.size == 3 * 188
        parsed = parse_playlist(variant.playlist_path.read_text(encoding="utf-8"))
        assert parsed.target_duration == 6
        assert [s.uri for s in parsed.segments] == [
            "quality_720p_000.ts",
            "quality_720p_001.ts",
            "quality_720p_002.ts",
        ]
        assert parsed.end_list

    def test_encode_settings(self, build, make_config, source_file, fake_segmenter):
        segmenter = fake_segmenter()
        build(segmenter=segmenter).process(
            source_file, make_config(video_preset="veryfast", segment_duration=4.0)
        )
        _, segment_config, encode_config = segmenter.video_calls[0]
        assert segment_config.segment_pattern == "quality_1080p_%03d.ts"
        assert segment_config.segment_duration == 4.0
        assert segment_config.source_duration == 60.0
        assert encode_config.preset == "veryfast"
        assert encode_config.profile.value == "high"
        # Source has no audio stream
        assert encode_config.include_audio is False

    def test_muxed_audio_when_tracks_not_extracted(
        self, build, make_config, source_file, fake_segmenter
    ):
        segmenter = fake_segmenter()
        build(segmenter=segmenter, audio=[("eng", None, True)]).process(
            source_file, make_config()
        )
        assert all(call[2].include_audio for call in segmenter.video_calls)
        assert segmenter.audio_calls == []

    def test_result_metadata(self, build, make_config, source_file):
        result = build().process(source_file, make_config(), job_id="job1")
        assert result.metadata.original_file == source_file
        assert result.metadata.duration == 60.0
        assert result.metadata.original_size == 4096
        assert result.metadata.processed_size > 0
        assert result.metadata.compression_ratio == pytest.approx(
            result.metadata.processed_size / 4096
        )
        assert result.metadata.processing_time == 0.0

    def test_generated_job_id(self, build, make_config, source_file, output_dir):
        result = build().process(source_file, make_config())
        assert len(result.video_id) == 32
        assert result.master_playlist.parent == output_dir / result.video_id


class TestSequentialFailures:
    """Sequential mode records task failures and carries on."""

    def test_failed_variant_skipped(
        self, build, bus, make_config, source_file, fake_segmenter
    ):
        orchestrator = build(segmenter=fake_segmenter(fail_variants=("720p",)))
        result = orchestrator.process(source_file, make_config(quality_preset="low"))

        assert not result.success
        assert [v.name for v in result.variants] == ["1080p", "480p"]
        assert len(result.errors) == 1
        assert result.errors[0].stage == "video"
        assert result.errors[0].variant == "720p"
        text = result.master_playlist.read_text(encoding="utf-8")
        assert "quality_720p" not in text
        assert text.count("#EXT-X-STREAM-INF:") == 2
        assert len(bus.of_kind(EventKind.VARIANT_FAILED)) == 1
        completed = bus.of_kind(EventKind.JOB_COMPLETED)
        assert completed[0].success is False
        assert completed[0].error_count == 1

    def test_all_variants_fail_no_master(
        self, build, bus, make_config, source_file, fake_segmenter, output_dir
    ):
        segmenter = fake_segmenter(fail_variants=("1080p", "720p", "480p"))
        result = build(segmenter=segmenter).process(
            source_file, make_config(quality_preset="low"), job_id="job1"
        )
        assert result.master_playlist is None
        assert len(result.errors) == 3
        assert not (output_dir / "job1" / "master.m3u8").exists()
        assert bus.of_kind(EventKind.WARNING)


class TestParallelMode:
    def test_all_succeed_in_ladder_order(self, build, make_config, source_file):
        result = build().process(source_file, make_config(parallel=True))
        assert result.success
        assert [v.name for v in result.variants] == ["1080p", "720p", "480p", "360p"]

    def test_first_failure_aborts(
        self, build, bus, make_config, source_file, fake_segmenter, output_dir
    ):
        segmenter = fake_segmenter(fail_variants=("720p",))
        result = build(segmenter=segmenter).process(
            source_file, make_config(parallel=True), job_id="job1"
        )

        assert not result.success
        assert result.variants == []
        assert result.master_playlist is None
        assert any(error.variant == "720p" for error in result.errors)
        assert not (output_dir / "job1" / "master.m3u8").exists()
        failed = bus.of_kind(EventKind.JOB_FAILED)
        assert len(failed) == 1
        assert failed[0].stage == "processing-video"
        assert EventKind.JOB_COMPLETED not in bus.kinds()

    def test_phase_progress_is_mean_of_variants(
        self, build, bus, make_config, source_file, fake_segmenter
    ):
        segmenter = LockstepSegmenter(fake_segmenter(), {"720p": 40.0, "480p": 80.0})
        build(segmenter=segmenter).process(
            source_file,
            make_config(parallel=True, target_resolutions=["720p", "480p"]),
        )

        video_progress = [
            event.percent
            for event in bus.of_kind(EventKind.PHASE_PROGRESS)
            if event.phase is ProcessingPhase.PROCESSING_VIDEO
        ]
        # The first report averages against an idle sibling, the second
        # against the first report
        assert video_progress in ([20.0, 60.0], [40.0, 60.0])

    def test_no_events_after_job_failed(
        self, build, bus, make_config, source_file, fake_segmenter
    ):
        """Running siblings are joined and silenced before the job fails."""
        segmenter = SlowSiblingSegmenter(fake_segmenter(fail_variants=("720p",)))
        result = build(segmenter=segmenter).process(
            source_file, make_config(parallel=True), job_id="job1"
        )

        assert not result.success
        kinds = bus.kinds()
        assert kinds[-1] == EventKind.JOB_FAILED
        assert kinds.count(EventKind.JOB_FAILED) == 1
        assert EventKind.VARIANT_PROGRESS not in kinds
        assert EventKind.VARIANT_COMPLETED not in kinds
        assert not [
            thread.name
            for thread in threading.enumerate()
            if thread.name.startswith("hlspack-job1")
        ]


class TestAudioRenditions:
    """Alternate audio tracks extracted as renditions."""

    def test_renditions_in_master(
        self, build, make_config, source_file, fake_segmenter
    ):
        segmenter = fake_segmenter()
        result = build(
            segmenter=segmenter,
            audio=[("eng", None, False), ("spa", "Latino", False)],
        ).process(source_file, make_config(extract_audio_tracks=True))

        assert result.success
        assert [(t.language, t.is_default) for t in result.audio_tracks] == [
            ("en", True),
            ("es", False),
        ]
        assert [call[3] for call in segmenter.audio_calls] == [0, 1]
        assert all(not call[2].include_audio for call in segmenter.video_calls)
        text = result.master_playlist.read_text(encoding="utf-8")
        assert (
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio",NAME="English",LANGUAGE="en",'
            'DEFAULT=YES,AUTOSELECT=YES,CHANNELS="2",URI="audio/audio_en_0.m3u8"'
        ) in text
        assert 'NAME="Latino",LANGUAGE="es",DEFAULT=NO' in text
        assert text.count('AUDIO="audio"') == 4

    def test_failed_track_moves_default(
        self, build, bus, make_config, source_file, fake_segmenter
    ):
        result = build(
            segmenter=fake_segmenter(fail_audio=(0,)),
            audio=[("eng", None, True), ("spa", None, False)],
        ).process(source_file, make_config(extract_audio_tracks=True))

        assert [(t.language, t.is_default) for t in result.audio_tracks] == [
            ("es", True)
        ]
        assert result.errors[0].stage == "audio"
        assert result.errors[0].variant == "audio:en:0"
        assert len(bus.of_kind(EventKind.AUDIO_FAILED)) == 1
        assert result.master_playlist is not None


class TestSubtitleRenditions:
    def test_webvtt_renditions(self, build, make_config, source_file, output_dir):
        result = build(
            subtitles=[("eng", None, False), ("fre", None, True)]
        ).process(source_file, make_config(extract_subtitles=True), job_id="job1")

        assert [s.language for s in result.subtitles] == ["en", "fr"]
        playlist = output_dir / "job1" / "subtitles" / "subtitle_en_0.m3u8"
        assert result.subtitles[0].playlist_path == playlist
        parsed = parse_playlist(playlist.read_text(encoding="utf-8"))
        assert [s.uri for s in parsed.segments] == ["subtitle_en_0.vtt"]
        assert parsed.segments[0].duration == 60.0
        text = result.master_playlist.read_text(encoding="utf-8")
        assert 'URI="subtitles/subtitle_en_0.m3u8"' in text
        assert 'NAME="French",LANGUAGE="fr",DEFAULT=YES' in text
        assert text.count('SUBTITLES="subs"') == 4

    def test_failed_subtitle_recorded(
        self, build, make_config, source_file, fake_subtitle_extractor
    ):
        result = build(
            subtitle_extractor=fake_subtitle_extractor(fail_languages=("fr",)),
            subtitles=[("eng", None, True), ("fre", None, False)],
        ).process(source_file, make_config(extract_subtitles=True))

        assert [s.language for s in result.subtitles] == ["en"]
        assert result.errors[0].stage == "subtitles"
        assert result.master_playlist is not None

    def test_bitmap_subtitle_kept_without_rendition(
        self, build, bus, make_config, source_file
    ):
        result = build(
            subtitle_extractor=RawSubtitleExtractor(),
            subtitles=[("eng", None, True, "hdmv_pgs_subtitle")],
        ).process(source_file, make_config(extract_subtitles=True))

        assert result.success
        assert result.subtitles[0].format == "pgs"
        assert result.subtitles[0].playlist_path is None
        text = result.master_playlist.read_text(encoding="utf-8")
        assert "TYPE=SUBTITLES" not in text
        assert "SUBTITLES=" not in text
        assert any("pgs" in event.message for event in bus.of_kind(EventKind.WARNING))


class TestEventsAndPhases:
    def test_event_order(self, build, bus, make_config, source_file):
        build().process(source_file, make_config())

        kinds = bus.kinds()
        assert kinds[0] is EventKind.JOB_STARTED
        assert kinds[-1] is EventKind.JOB_COMPLETED
        started = [event.phase for event in bus.of_kind(EventKind.PHASE_STARTED)]
        assert started == [
            ProcessingPhase.ANALYZING,
            ProcessingPhase.PLANNING,
            ProcessingPhase.PROCESSING_VIDEO,
            ProcessingPhase.GENERATING_PLAYLISTS,
            ProcessingPhase.CLEANUP,
            ProcessingPhase.COMPLETE,
        ]
        assert len(bus.of_kind(EventKind.PHASE_COMPLETED)) == len(started)
        assert len(bus.of_kind(EventKind.VARIANT_COMPLETED)) == 4

    def test_subtitles_before_video(self, build, bus, make_config, source_file):
        build(audio=[("eng", None, True)], subtitles=[("eng", None, True)]).process(
            source_file,
            make_config(extract_audio_tracks=True, extract_subtitles=True),
        )
        started = [event.phase for event in bus.of_kind(EventKind.PHASE_STARTED)]
        assert started[2:5] == [
            ProcessingPhase.PROCESSING_SUBTITLES,
            ProcessingPhase.PROCESSING_VIDEO,
            ProcessingPhase.PROCESSING_AUDIO,
        ]

    def test_sequential_video_progress_reaches_100(
        self, build, bus, make_config, source_file
    ):
        build().process(source_file, make_config())
        video_progress = [
            event.percent
            for event in bus.of_kind(EventKind.PHASE_PROGRESS)
            if event.phase is ProcessingPhase.PROCESSING_VIDEO
        ]
        assert video_progress[0] == pytest.approx(12.5)
        assert video_progress[-1] == pytest.approx(100.0)
        assert video_progress == sorted(video_progress)


class TestCleanupAndOriginal:
    def test_temp_removed(self, build, make_config, source_file, output_dir):
        build().process(source_file, make_config(), job_id="job1")
        assert not (output_dir / "job1" / ".tmp").exists()

    def test_temp_kept_without_cleanup(
        self, build, bus, make_config, source_file, output_dir
    ):
        build().process(source_file, make_config(cleanup_temp=False), job_id="job1")
        assert (output_dir / "job1" / ".tmp").is_dir()
        assert EventKind.CLEANUP_STARTED not in bus.kinds()

    def test_keep_original(self, build, make_config, source_file, output_dir):
        build().process(source_file, make_config(keep_original=True), job_id="job1")
        copy = output_dir / "job1" / "custom" / "movie.mkv"
        assert copy.read_bytes() == source_file.read_bytes()


class TestJobFailures:
    """Job-level failures are published and raised."""

    def test_missing_source(self, build, bus, make_config, temp_dir):
        with pytest.raises(MediaFileNotFoundError):
            build().process(temp_dir / "missing.mkv", make_config())
        failed = bus.of_kind(EventKind.JOB_FAILED)
        assert failed[0].stage == "analyzing"
        assert EventKind.PHASE_FAILED in bus.kinds()

    def test_non_video_source(
        self, build, bus, make_config, make_metadata, source_file
    ):
        metadata = replace(
            make_metadata(path=source_file),
            media_type=MediaType.AUDIO,
            primary_video=None,
        )
        with pytest.raises(InvalidInputError):
            build(metadata=metadata).process(source_file, make_config())
        assert bus.of_kind(EventKind.JOB_FAILED)[0].stage == "analyzing"

    def test_tracker_detached_after_job(self, build, bus, make_config, source_file):
        subscribers = bus.subscriber_count()
        build().process(source_file, make_config())
        assert bus.subscriber_count() == subscribers
