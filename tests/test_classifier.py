"""
Tests for device compatibility classification.
"""

import pytest

from castcompat.compat import (
    AudioTranscode,
    CodecType,
    CompatibilityClassifier,
    StreamInfo,
    VideoTranscode,
    find_subtitle_file,
    select_stream,
)
from castcompat.config import DeviceConfig

from .conftest import make_metadata


@pytest.fixture
def classifier():
    return CompatibilityClassifier()


class TestStreamChecks:

    @pytest.mark.parametrize("level", [31, 41, 42, 5, 50])
    def test_supported_levels(self, classifier, level):
        stream = StreamInfo(0, CodecType.VIDEO, "h264", "High", level)
        assert classifier.is_video_compatible(stream)

    @pytest.mark.parametrize("codec,profile,level", [
        ("h264", "High", 51),
        ("h264", "Main", 41),
        ("hevc", "Main", 41),
        ("h264", None, 41),
        ("h264", "High", None),
    ])
    def test_unsupported_video(self, classifier, codec, profile, level):
        stream = StreamInfo(0, CodecType.VIDEO, codec, profile, level)
        assert not classifier.is_video_compatible(stream)

    def test_codec_names_are_case_insensitive(self, classifier):
        assert classifier.is_video_compatible(StreamInfo(0, CodecType.VIDEO, "H264", "high", 41))
        assert classifier.is_audio_compatible(StreamInfo(1, CodecType.AUDIO, "AAC"))

    @pytest.mark.parametrize("codec,expected", [
        ("aac", True), ("mp3", True), ("vorbis", True), ("opus", True),
        ("ac3", False), ("dts", False), ("flac", False),
    ])
    def test_audio(self, classifier, codec, expected):
        assert classifier.is_audio_compatible(StreamInfo(1, CodecType.AUDIO, codec)) is expected

    @pytest.mark.parametrize("format_name,expected", [
        ("mov,mp4,m4a,3gp,3g2,mj2", True),
        ("matroska,webm", True),
        ("matroska", False),
        ("avi", False),
        ("", False),
    ])
    def test_container(self, classifier, format_name, expected):
        metadata = make_metadata(format_name=format_name)
        assert classifier.is_container_compatible(metadata) is expected

    def test_custom_device_profile(self):
        device = DeviceConfig(video_codecs=["hevc"], video_profiles=["Main"], video_levels=[120])
        classifier = CompatibilityClassifier(device)
        assert classifier.is_video_compatible(StreamInfo(0, CodecType.VIDEO, "hevc", "Main", 120))
        assert not classifier.is_video_compatible(StreamInfo(0, CodecType.VIDEO, "h264", "High", 41))


class TestSelectStream:

    def test_default_flag_wins(self):
        streams = [
            StreamInfo(1, CodecType.AUDIO, "ac3"),
            StreamInfo(2, CodecType.AUDIO, "aac", is_default=True),
        ]
        assert select_stream(streams).codec_name == "aac"

    def test_first_when_no_default(self):
        streams = [
            StreamInfo(1, CodecType.AUDIO, "ac3"),
            StreamInfo(2, CodecType.AUDIO, "aac"),
        ]
        assert select_stream(streams).codec_name == "ac3"

    def test_empty(self):
        assert select_stream([]) is None


class TestClassify:

    def test_fully_compatible_mp4(self, classifier, tmp_path):
        path = str(tmp_path / "clip.mp4")
        result = classifier.classify(path, make_metadata())

        assert result.compatible
        assert result.video_transcode == VideoTranscode.COPY
        assert result.audio_transcode == AudioTranscode.COPY
        assert result.recommended_command == 'ffmpeg -i "clip.mp4" -vcodec copy -acodec copy "clip.mp4"'
        assert result.subtitle_file is None

    def test_mkv_with_ac3_needs_audio_and_container(self, classifier, tmp_path):
        path = str(tmp_path / "movie.mkv")
        metadata = make_metadata(audio="ac3", format_name="matroska")
        result = classifier.classify(path, metadata)

        assert result.video_compatible
        assert not result.audio_compatible
        assert not result.container_compatible
        assert not result.compatible
        assert result.audio_transcode == AudioTranscode.REENCODE
        assert result.recommended_command == (
            'ffmpeg -i "movie.mkv" -vcodec copy -acodec aac -q:a 100 "movie.mp4"'
        )

    def test_incompatible_video_is_reencoded(self, classifier, tmp_path):
        metadata = make_metadata(video=("hevc", "Main 10", 150))
        result = classifier.classify(str(tmp_path / "show.mp4"), metadata)

        assert not result.video_compatible
        assert result.audio_compatible
        assert result.video_transcode == VideoTranscode.REENCODE
        assert "-vcodec libx264 -profile:v high -level 5.0" in result.recommended_command

    def test_missing_audio_stream(self, classifier, tmp_path):
        result = classifier.classify(str(tmp_path / "silent.mp4"), make_metadata(audio=None))

        assert not result.audio_compatible
        assert result.audio_transcode is None
        assert result.video_transcode == VideoTranscode.COPY
        assert result.recommended_command == 'ffmpeg -i "silent.mp4" -vcodec copy "silent.mp4"'

    def test_missing_video_stream(self, classifier, tmp_path):
        result = classifier.classify(str(tmp_path / "song.mp4"), make_metadata(video=None))

        assert not result.video_compatible
        assert result.video_transcode is None
        assert result.audio_transcode == AudioTranscode.COPY
        assert not result.compatible

    def test_default_audio_stream_decides(self, classifier, tmp_path):
        metadata = make_metadata(audio=None, extra_streams=[
            {"index": 1, "codec_type": "audio", "codec_name": "dts"},
            {"index": 2, "codec_type": "audio", "codec_name": "aac", "disposition": {"default": 1}},
        ])
        result = classifier.classify(str(tmp_path / "movie.mp4"), metadata)
        assert result.audio_compatible

    def test_unprobed_file(self, classifier, tmp_path):
        result = classifier.classify(str(tmp_path / "broken.avi"), None)

        assert not result.compatible
        assert not result.video_compatible
        assert not result.audio_compatible
        assert not result.container_compatible
        assert result.video_transcode is None
        assert result.audio_transcode is None
        assert result.metadata is None
        assert result.recommended_command == 'ffmpeg -i "broken.avi" "broken.mp4"'

    def test_subtitle_beside_file(self, classifier, media_root):
        path = str(media_root / "Movies" / "movie.mkv")
        result = classifier.classify(path, make_metadata())
        assert result.subtitle_file == str(media_root / "Movies" / "movie.srt")

    def test_subtitle_found_for_unprobed_file(self, classifier, media_root):
        result = classifier.classify(str(media_root / "Movies" / "movie.mkv"), None)
        assert result.subtitle_file is not None


class TestFindSubtitleFile:

    def test_only_exact_stem_matches(self, tmp_path):
        (tmp_path / "movie.en.srt").write_text("")
        assert find_subtitle_file(str(tmp_path / "movie.mkv")) is None

        (tmp_path / "movie.srt").write_text("")
        assert find_subtitle_file(str(tmp_path / "movie.mkv")) == str(tmp_path / "movie.srt")

    def test_directory_named_like_subtitle_is_ignored(self, tmp_path):
        (tmp_path / "movie.srt").mkdir()
        assert find_subtitle_file(str(tmp_path / "movie.mkv")) is None
