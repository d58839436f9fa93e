"""Unit tests for alternate track descriptors."""

from hlspack.tracks import describe_audio_tracks, describe_subtitle_tracks


class TestDescribeAudioTracks:
    """Tests for describe_audio_tracks()."""

    def test_no_audio(self, make_metadata):
        assert describe_audio_tracks(make_metadata()) == []

    def test_indices_and_languages(self, make_metadata):
        metadata = make_metadata(
            audio=[("eng", None, False), ("spa", "Castellano", False)]
        )
        tracks = describe_audio_tracks(metadata)
        assert [(t.index, t.stream_index) for t in tracks] == [(1, 0), (2, 1)]
        assert [t.language for t in tracks] == ["en", "es"]
        assert [t.name for t in tracks] == ["English", "Castellano"]
        assert all(t.channels == 2 for t in tracks)

    def test_first_track_default_when_none_flagged(self, make_metadata):
        tracks = describe_audio_tracks(
            make_metadata(audio=[("eng", None, False), ("fre", None, False)])
        )
        assert [t.is_default for t in tracks] == [True, False]

    def test_flagged_default_wins(self, make_metadata):
        tracks = describe_audio_tracks(
            make_metadata(audio=[("eng", None, False), ("fre", None, True)])
        )
        assert [t.is_default for t in tracks] == [False, True]

    def test_duplicate_names_are_numbered(self, make_metadata):
        """NAME must be unique within the rendition group."""
        tracks = describe_audio_tracks(
            make_metadata(audio=[("eng", None, True), ("eng", None, False)])
        )
        assert [t.name for t in tracks] == ["English", "English (2)"]

    def test_blank_title_falls_back_to_language(self, make_metadata):
        tracks = describe_audio_tracks(make_metadata(audio=[(None, "  ", True)]))
        assert tracks[0].name == "Unknown"
        assert tracks[0].language == "und"


class TestDescribeSubtitleTracks:
    def test_subtitles(self, make_metadata):
        metadata = make_metadata(
            audio=[("eng", None, True)],
            subtitles=[
                ("eng", None, False),
                ("fre", "Forced", False, "hdmv_pgs_subtitle"),
            ],
        )
        tracks = describe_subtitle_tracks(metadata)
        assert [(t.index, t.stream_index) for t in tracks] == [(2, 0), (3, 1)]
        assert [t.codec for t in tracks] == ["subrip", "hdmv_pgs_subtitle"]
        assert [t.name for t in tracks] == ["English", "Forced"]
        assert tracks[0].is_default is True
