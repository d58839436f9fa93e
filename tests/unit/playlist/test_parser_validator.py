"""Unit tests for playlist parsing and validation."""

import pytest

from hlspack.domain.enums import PlaylistType
from hlspack.exceptions import PlaylistParseError
from hlspack.playlist.parser import parse_attribute_list, parse_playlist
from hlspack.playlist.validator import validate_playlist, validate_playlist_structure

MEDIA = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:6
#EXT-X-MEDIA-SEQUENCE:0
#EXT-X-PLAYLIST-TYPE:VOD
#EXTINF:6.000000,
seg_000.ts
#EXTINF:4.000000,
seg_001.ts
#EXT-X-ENDLIST
"""

MASTER = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    "\n"
    '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio",NAME="English",LANGUAGE="en",'
    'DEFAULT=YES,AUTOSELECT=YES,CHANNELS="2",URI="audio/en.m3u8"\n'
    "\n"
    '#EXT-X-STREAM-INF:BANDWIDTH=2928000,RESOLUTION=1280x720,'
    'CODECS="avc1.4d001f,mp4a.40.2",AUDIO="audio"\n'
    "video/quality_720p.m3u8\n"
)


class TestParseAttributeList:
    def test_quoted_values_may_contain_commas(self):
        attributes = parse_attribute_list(
            'BANDWIDTH=800000,CODECS="avc1.42001e,mp4a.40.2",RESOLUTION=640x360'
        )
        assert attributes == {
            "BANDWIDTH": "800000",
            "CODECS": "avc1.42001e,mp4a.40.2",
            "RESOLUTION": "640x360",
        }


class TestParsePlaylist:
    """Tests for parse_playlist()."""

    def test_media_playlist(self):
        parsed = parse_playlist(MEDIA)
        assert parsed.kind == "media"
        assert parsed.version == 3
        assert parsed.target_duration == 6
        assert parsed.media_sequence == 0
        assert parsed.playlist_type is PlaylistType.VOD
        assert parsed.end_list
        assert [s.uri for s in parsed.segments] == ["seg_000.ts", "seg_001.ts"]
        assert parsed.total_duration == 10.0

    def test_master_playlist(self):
        parsed = parse_playlist(MASTER)
        assert parsed.is_master
        variant = parsed.variants[0]
        assert variant.bandwidth == 2928000
        assert variant.resolution == (1280, 720)
        assert variant.codecs == "avc1.4d001f,mp4a.40.2"
        assert variant.audio_group == "audio"
        assert variant.uri == "video/quality_720p.m3u8"
        rendition = parsed.audio_renditions[0]
        assert rendition.is_default
        assert rendition.uri == "audio/en.m3u8"

    def test_ignores_comments_and_unknown_tags(self):
        text = MEDIA.replace(
            "#EXT-X-ENDLIST", "# comment\n#EXT-X-PROGRAM-DATE-TIME:x\n#EXT-X-ENDLIST"
        )
        assert len(parse_playlist(text).segments) == 2

    def test_dangling_extinf_is_recorded(self):
        text = "#EXTM3U\n#EXT-X-VERSION:3\n#EXT-X-TARGETDURATION:6\n#EXTINF:6.0,\n"
        assert parse_playlist(text).dangling_extinf_lines == [4]

    def test_strips_byte_order_mark(self):
        assert parse_playlist("\ufeff" + MEDIA).version == 3

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   \n",
            "#EXT-X-VERSION:3\n#EXTM3U\n",
            "#EXTM3U\n#EXT-X-VERSION:three\n",
            "#EXTM3U\n#EXTINF:abc,\nseg.ts\n",
            "#EXTM3U\n#EXT-X-PLAYLIST-TYPE:LIVE\n",
        ],
    )
    def test_malformed_input_raises(self, text):
        with pytest.raises(PlaylistParseError):
            parse_playlist(text)


class TestValidatePlaylist:
    """Tests for the minimal conformance rules."""

    def test_valid_media_playlist(self):
        assert validate_playlist(MEDIA).valid

    def test_missing_header(self):
        result = validate_playlist(MEDIA.replace("#EXTM3U\n", ""))
        assert not result.valid
        assert "Playlist must start with #EXTM3U" in result.errors

    def test_missing_version(self):
        result = validate_playlist(MEDIA.replace("#EXT-X-VERSION:3\n", ""))
        assert "Missing #EXT-X-VERSION tag" in result.errors

    def test_vod_without_endlist(self):
        result = validate_playlist(MEDIA.replace("#EXT-X-ENDLIST\n", ""))
        assert "VOD playlist must end with #EXT-X-ENDLIST" in result.errors


class TestValidatePlaylistStructure:
    """Tests for the structural checks."""

    def test_valid_master(self):
        result = validate_playlist_structure(MASTER)
        assert result.valid
        assert result.errors == ()

    def test_unresolved_audio_group_is_an_error(self):
        text = MASTER.replace('GROUP-ID="audio"', 'GROUP-ID="other"')
        result = validate_playlist_structure(text)
        assert not result.valid
        assert 'Referenced audio group "audio" not found' in result.errors

    def test_unresolved_subtitle_group_is_an_error(self):
        text = MASTER.replace('AUDIO="audio"', 'AUDIO="audio",SUBTITLES="subs"')
        result = validate_playlist_structure(text)
        assert 'Referenced subtitle group "subs" not found' in result.errors

    def test_variant_without_uri(self):
        text = MASTER.replace("video/quality_720p.m3u8\n", "")
        result = validate_playlist_structure(text)
        assert "Variant 1: missing URI after #EXT-X-STREAM-INF" in result.errors

    def test_media_without_target_duration(self):
        text = MEDIA.replace("#EXT-X-TARGETDURATION:6\n", "")
        result = validate_playlist_structure(text)
        assert "Media playlist must specify #EXT-X-TARGETDURATION" in result.errors

    def test_media_without_segments(self):
        text = "#EXTM3U\n#EXT-X-VERSION:3\n#EXT-X-TARGETDURATION:6\n"
        result = validate_playlist_structure(text)
        assert "Media playlist must contain at least one segment" in result.errors

    def test_long_segment_is_a_warning(self):
        text = MEDIA.replace("#EXTINF:6.000000,", "#EXTINF:9.000000,")
        result = validate_playlist_structure(text)
        assert result.valid
        assert any("exceeds target duration" in w for w in result.warnings)

    def test_old_version_is_a_warning(self):
        result = validate_playlist_structure(
            MEDIA.replace("#EXT-X-VERSION:3", "#EXT-X-VERSION:2")
        )
        assert result.valid
        assert any("Version 3 or higher" in w for w in result.warnings)

    def test_parse_error_is_reported(self):
        result = validate_playlist_structure("#EXTM3U\n#EXT-X-VERSION:x\n")
        assert not result.valid
        assert any("invalid integer" in e for e in result.errors)
