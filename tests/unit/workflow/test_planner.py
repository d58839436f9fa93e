"""Unit tests for processing plan construction."""

from dataclasses import replace
from pathlib import Path

import pytest

from hlspack.exceptions import InvalidInputError
from hlspack.workflow.planner import build_processing_plan, select_resolutions

SOURCE = Path("/media/movie.mkv")


def _names(resolutions):
    return [resolution.name for resolution in resolutions]


class TestSelectResolutions:
    """Tests for select_resolutions()."""

    def test_preset_ladder(self, make_config):
        resolutions = select_resolutions(1920, 1080, make_config())
        assert _names(resolutions) == ["1080p", "720p", "480p", "360p"]

    def test_named_rungs_in_ladder_order(self, make_config):
        config = make_config(target_resolutions=["480p", "1080p"])
        assert _names(select_resolutions(1920, 1080, config)) == ["1080p", "480p"]

    def test_rungs_beyond_the_preset_are_available(self, make_config):
        config = make_config(quality_preset="low", target_resolutions=["144p"])
        assert _names(select_resolutions(1920, 1080, config)) == ["144p"]

    def test_unavailable_names_dropped(self, make_config):
        config = make_config(target_resolutions=["2160p", "720p"])
        assert _names(select_resolutions(1920, 1080, config)) == ["720p"]

    def test_nothing_matches_falls_back_to_preset(self, make_config):
        config = make_config(target_resolutions=["2160p"], quality_preset="low")
        assert _names(select_resolutions(1920, 1080, config)) == [
            "1080p",
            "720p",
            "480p",
        ]


class TestBuildProcessingPlan:
    """Tests for build_processing_plan()."""

    def test_video_only_plan(self, make_config, make_metadata):
        plan = build_processing_plan(SOURCE, make_metadata(), make_config())

        assert plan.source_path == SOURCE
        assert len(plan.variants) == len(plan.resolutions) == 4
        assert plan.audio_tracks == ()
        assert plan.subtitles == ()
        first = plan.variants[0]
        assert first.bandwidth == 5_128_000
        assert first.codec == "avc1.64001f,mp4a.40.2"
        assert first.playlist_path == "video/quality_1080p.m3u8"
        assert first.frame_rate == 25.0
        assert first.audio_group is None
        assert first.subtitle_group is None

    def test_estimates(self, make_config, make_metadata):
        plan = build_processing_plan(
            SOURCE, make_metadata(duration=80.0), make_config()
        )
        total_bandwidth = sum(variant.bandwidth for variant in plan.variants)
        assert plan.estimated_duration == 80.0
        assert plan.estimated_size == int(total_bandwidth * 80.0 / 8)

    def test_tracks_link_groups(self, make_config, make_metadata):
        metadata = make_metadata(
            audio=[("eng", None, True)], subtitles=[("eng", None, False)]
        )
        config = make_config(extract_audio_tracks=True, extract_subtitles=True)

        plan = build_processing_plan(SOURCE, metadata, config)

        assert len(plan.audio_tracks) == 1
        assert len(plan.subtitles) == 1
        assert {variant.audio_group for variant in plan.variants} == {"audio"}
        assert {variant.subtitle_group for variant in plan.variants} == {"subs"}

    def test_tracks_ignored_when_disabled(self, make_config, make_metadata):
        metadata = make_metadata(audio=[("eng", None, True)])
        plan = build_processing_plan(SOURCE, metadata, make_config())
        assert plan.audio_tracks == ()
        assert plan.variants[0].audio_group is None

    def test_audio_quality_in_bandwidth(self, make_config, make_metadata):
        plan = build_processing_plan(
            SOURCE, make_metadata(), make_config(audio_quality="high")
        )
        assert plan.variants[0].bandwidth == 5_192_000
        assert plan.variants[0].audio_bitrate == "192k"

    def test_no_video_stream(self, make_config, make_metadata):
        metadata = replace(make_metadata(), primary_video=None)
        with pytest.raises(InvalidInputError):
            build_processing_plan(SOURCE, metadata, make_config())

    def test_frame_too_small_for_ladder(self, make_config, make_metadata):
        metadata = make_metadata(width=1000, height=1)
        with pytest.raises(InvalidInputError, match="too small"):
            build_processing_plan(SOURCE, metadata, make_config())
