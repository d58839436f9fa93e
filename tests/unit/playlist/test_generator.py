"""Unit tests for HLS playlist generation."""

from pathlib import Path

import pytest

from hlspack.domain.enums import H264Profile, PlaylistType
from hlspack.domain.models import (
    HLSAudioRendition,
    HLSSubtitleRendition,
    Resolution,
    Segment,
)
from hlspack.exceptions import PlaylistWriteError
from hlspack.playlist.generator import (
    PlaylistGenerator,
    build_variant,
    calculate_bandwidth,
    detect_profile,
    generate_codec_string,
    parse_bitrate_kbps,
)
from hlspack.playlist.parser import parse_playlist
from hlspack.playlist.validator import validate_playlist_structure

R1080 = Resolution("1080p", 1920, 1080, "5000k")
R720 = Resolution("720p", 1280, 720, "2800k")
R360 = Resolution("360p", 640, 360, "800k")


class TestBandwidth:
    """Tests for bitrate parsing and bandwidth calculation."""

    def test_calculate_bandwidth(self):
        assert calculate_bandwidth("5000k", "128k") == 5128000

    def test_default_audio_bitrate(self):
        assert calculate_bandwidth("800k") == 928000

    @pytest.mark.parametrize(
        ("text", "kbps"),
        [("5000k", 5000.0), ("5M", 5000.0), (" 128K ", 128.0), ("64", 64.0)],
    )
    def test_parse_bitrate_kbps(self, text, kbps):
        assert parse_bitrate_kbps(text) == kbps

    @pytest.mark.parametrize("text", ["fast", "", "-5k"])
    def test_parse_bitrate_rejects_garbage(self, text):
        with pytest.raises(ValueError):
            parse_bitrate_kbps(text)


class TestProfiles:
    """Tests for profile detection and codec strings."""

    @pytest.mark.parametrize(
        ("height", "profile", "codec"),
        [
            (2160, H264Profile.HIGH, "avc1.64001f,mp4a.40.2"),
            (1080, H264Profile.HIGH, "avc1.64001f,mp4a.40.2"),
            (720, H264Profile.MAIN, "avc1.4d001f,mp4a.40.2"),
            (480, H264Profile.BASELINE, "avc1.42001e,mp4a.40.2"),
            (360, H264Profile.BASELINE, "avc1.42001e,mp4a.40.2"),
        ],
    )
    def test_profile_by_height(self, height, profile, codec):
        assert detect_profile(height) is profile
        assert generate_codec_string(detect_profile(height)) == codec


class TestBuildVariant:
    def test_derives_bandwidth_codec_and_path(self):
        """build_variant fills every derived field from the rung."""
        variant = build_variant(R720, "128k", frame_rate=25.0, audio_group="audio")
        assert variant.name == "720p"
        assert variant.bandwidth == 2928000
        assert variant.codec == "avc1.4d001f,mp4a.40.2"
        assert variant.playlist_path == "video/quality_720p.m3u8"
        assert variant.audio_group == "audio"
        assert variant.subtitle_group is None


class TestMasterPlaylist:
    """Tests for master playlist text."""

    def test_variants_only(self):
        """Without renditions no EXT-X-MEDIA or group attributes appear."""
        generator = PlaylistGenerator()
        text = generator.build_master_playlist(
            [build_variant(R1080), build_variant(R720)]
        )
        assert text.startswith("#EXTM3U\n#EXT-X-VERSION:3\n")
        assert "#EXT-X-MEDIA" not in text
        assert "AUDIO=" not in text
        assert text.count("#EXT-X-STREAM-INF:") == 2
        assert (
            '#EXT-X-STREAM-INF:BANDWIDTH=5128000,RESOLUTION=1920x1080,'
            'CODECS="avc1.64001f,mp4a.40.2"\nvideo/quality_1080p.m3u8'
        ) in text

    def test_renditions_precede_variants(self):
        """Audio and subtitle entries are listed before the variants."""
        generator = PlaylistGenerator()
        variant = build_variant(
            R720, frame_rate=29.97, audio_group="audio", subtitle_group="subs"
        )
        audio = HLSAudioRendition(
            group_id="audio",
            name="English",
            language="en",
            playlist_path="audio/audio_en_0.m3u8",
            is_default=True,
        )
        subtitle = HLSSubtitleRendition(
            group_id="subs",
            name="Spanish",
            language="es",
            playlist_path="subtitles/subtitle_es_0.m3u8",
            is_forced=True,
        )
        text = generator.build_master_playlist([variant], [audio], [subtitle])
        lines = text.splitlines()
        media_lines = [
            i for i, line in enumerate(lines) if line.startswith("#EXT-X-MEDIA")
        ]
        stream_line = next(
            i for i, line in enumerate(lines) if line.startswith("#EXT-X-STREAM-INF")
        )
        assert max(media_lines) < stream_line
        assert (
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio",NAME="English",LANGUAGE="en",'
            'DEFAULT=YES,AUTOSELECT=YES,CHANNELS="2",URI="audio/audio_en_0.m3u8"'
        ) in lines
        assert lines[media_lines[1]].endswith(",FORCED=YES")
        assert 'AUDIO="audio"' in lines[stream_line]
        assert 'SUBTITLES="subs"' in lines[stream_line]
        assert "FRAME-RATE=29.970" in lines[stream_line]

    def test_group_omitted_when_no_renditions_survive(self):
        """A variant's group is only referenced if the group has entries."""
        generator = PlaylistGenerator()
        variant = build_variant(R720, audio_group="audio", subtitle_group="subs")
        text = generator.build_master_playlist([variant], [], [])
        assert "AUDIO=" not in text
        assert "SUBTITLES=" not in text
        assert validate_playlist_structure(text).valid

    def test_quotes_in_names_are_replaced(self):
        generator = PlaylistGenerator()
        audio = HLSAudioRendition(
            group_id="audio",
            name='Director "Cut"',
            language="en",
            playlist_path="audio/a.m3u8",
        )
        text = generator.build_master_playlist([build_variant(R720)], [audio])
        assert "NAME=\"Director 'Cut'\"" in text

    def test_master_round_trips_through_parser(self):
        """Generated master playlists parse back to the same structure."""
        generator = PlaylistGenerator()
        variants = [
            build_variant(r, audio_group="audio") for r in (R1080, R720, R360)
        ]
        audio = [
            HLSAudioRendition("audio", "English", "en", "audio/en.m3u8", 2, True),
            HLSAudioRendition("audio", "French", "fr", "audio/fr.m3u8", 2, False),
        ]
        parsed = parse_playlist(generator.build_master_playlist(variants, audio))
        assert parsed.is_master
        assert [v.uri for v in parsed.variants] == [v.playlist_path for v in variants]
        assert [v.bandwidth for v in parsed.variants] == [
            v.bandwidth for v in variants
        ]
        assert [r.language for r in parsed.audio_renditions] == ["en", "fr"]
        assert [r.is_default for r in parsed.audio_renditions] == [True, False]


class TestMediaPlaylist:
    """Tests for variant/audio media playlists."""

    def test_vod_playlist(self):
        generator = PlaylistGenerator(target_duration=6)
        segments = [
            Segment(6.0, "quality_720p_000.ts"),
            Segment(6.0, "quality_720p_001.ts"),
            Segment(2.5, "quality_720p_002.ts"),
        ]
        text = generator.build_media_playlist(segments)
        assert text.splitlines()[:5] == [
            "#EXTM3U",
            "#EXT-X-VERSION:3",
            "#EXT-X-TARGETDURATION:6",
            "#EXT-X-MEDIA-SEQUENCE:0",
            "#EXT-X-PLAYLIST-TYPE:VOD",
        ]
        assert "#EXTINF:2.500000,\nquality_720p_002.ts" in text
        assert text.rstrip().endswith("#EXT-X-ENDLIST")
        assert validate_playlist_structure(text).valid

    def test_target_duration_covers_longest_segment(self):
        """TARGETDURATION is the ceiling of the longest segment."""
        generator = PlaylistGenerator(target_duration=6)
        text = generator.build_media_playlist([Segment(6.4, "a.ts")])
        assert "#EXT-X-TARGETDURATION:7" in text

    def test_segments_keep_order(self):
        generator = PlaylistGenerator()
        segments = [Segment(4.0, f"s{i}.ts") for i in (2, 0, 1)]
        parsed = parse_playlist(generator.build_media_playlist(segments))
        assert [s.uri for s in parsed.segments] == ["s2.ts", "s0.ts", "s1.ts"]

    def test_event_playlist_is_not_terminated(self):
        generator = PlaylistGenerator(playlist_type=PlaylistType.EVENT)
        text = generator.build_media_playlist([Segment(6.0, "a.ts")])
        assert "#EXT-X-PLAYLIST-TYPE:EVENT" in text
        assert "#EXT-X-ENDLIST" not in text

    def test_rejects_invalid_settings(self):
        with pytest.raises(ValueError):
            PlaylistGenerator(target_duration=0)
        with pytest.raises(ValueError):
            PlaylistGenerator(version=0)


class TestSubtitlePlaylist:
    def test_single_segment_covering_duration(self):
        generator = PlaylistGenerator()
        text = generator.build_subtitle_playlist("subtitle_en_0.vtt", 125.5)
        assert "#EXT-X-TARGETDURATION:126" in text
        assert "#EXTINF:125.500000,\nsubtitle_en_0.vtt" in text
        assert text.rstrip().endswith("#EXT-X-ENDLIST")

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValueError):
            PlaylistGenerator().build_subtitle_playlist("a.vtt", 0)


class TestWritePlaylists:
    """Tests for writing playlists to disk."""

    def test_write_creates_parent_directory(self, temp_dir: Path):
        generator = PlaylistGenerator()
        path = temp_dir / "job" / "master.m3u8"
        result = generator.write_master_playlist(path, [build_variant(R720)])
        assert result == path
        assert path.read_text(encoding="utf-8").startswith("#EXTM3U")

    def test_write_failure_raises_playlist_write_error(self, temp_dir: Path):
        """An unwritable target surfaces as PlaylistWriteError."""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")
        generator = PlaylistGenerator()
        with pytest.raises(PlaylistWriteError) as exc_info:
            generator.write_media_playlist(
                blocker / "video.m3u8", [Segment(6.0, "a.ts")]
            )
        assert exc_info.value.path == blocker / "video.m3u8"
