"""
Tests for ffmpeg command rendering.
"""

from castcompat.compat import AudioTranscode, CommandBuilder, VideoTranscode, escape_filter_path


class TestEscapeFilterPath:

    def test_colon_is_escaped_twice(self):
        assert escape_filter_path("/m/a:b.srt") == "/m/a\\\\:b.srt"

    def test_plain_path_unchanged(self):
        assert escape_filter_path("/media/Movies/movie.srt") == "/media/Movies/movie.srt"

    def test_graph_characters(self):
        assert escape_filter_path("/m/[x],y;.srt") == "/m/\\[x\\]\\,y\\;.srt"

    def test_quote(self):
        # ' -> \' at option level, then both characters escaped at graph level
        assert escape_filter_path("/m/it's.srt") == "/m/it\\\\\\'s.srt"


class TestCommandBuilder:

    def test_stream_args_copy_both(self):
        builder = CommandBuilder()
        args = builder.build_stream_args(VideoTranscode.COPY, AudioTranscode.COPY)
        assert args == ["-strict", "experimental", "-acodec", "copy", "-vcodec", "copy"]

    def test_stream_args_reencode_both(self):
        builder = CommandBuilder()
        args = builder.build_stream_args(VideoTranscode.REENCODE, AudioTranscode.REENCODE)
        assert args == [
            "-strict", "experimental",
            "-acodec", "aac", "-q:a", "100",
            "-vcodec", "libx264", "-profile:v", "high", "-level", "5.0",
        ]

    def test_subtitles_force_video_reencode(self):
        builder = CommandBuilder()
        args = builder.build_stream_args(
            VideoTranscode.COPY, AudioTranscode.COPY, subtitle_file="/m/a:b.srt"
        )
        assert "libx264" in args
        assert "copy" == args[args.index("-acodec") + 1]
        assert args[-2:] == ["-vf", "subtitles=filename=/m/a\\\\:b.srt"]

    def test_audio_track_mapping(self):
        builder = CommandBuilder()
        args = builder.build_stream_args(VideoTranscode.COPY, AudioTranscode.COPY, audio_track=2)
        assert args[:4] == ["-map", "0:v:0?", "-map", "0:a:2?"]

    def test_missing_streams_add_no_codec_args(self):
        builder = CommandBuilder()
        assert builder.build_stream_args(None, None) == ["-strict", "experimental"]

    def test_stream_command_matroska(self):
        builder = CommandBuilder("/usr/bin/ffmpeg", "matroska")
        cmd = builder.build_stream_command("/m/movie.mkv", ["-vcodec", "copy"])
        assert cmd == [
            "/usr/bin/ffmpeg", "-hide_banner", "-nostdin", "-i", "/m/movie.mkv",
            "-vcodec", "copy", "-f", "matroska", "pipe:1",
        ]

    def test_stream_command_mp4_is_fragmented(self):
        builder = CommandBuilder("ffmpeg", "mp4")
        cmd = builder.build_stream_command("/m/movie.mkv", [])
        assert "-movflags" in cmd
        assert cmd[-1] == "pipe:1"

    def test_recommended_command_uses_file_names(self):
        builder = CommandBuilder()
        command = builder.recommended_command(
            "/srv/media/Movies/The Movie.mkv", VideoTranscode.REENCODE, AudioTranscode.COPY
        )
        assert command == (
            'ffmpeg -i "The Movie.mkv" -vcodec libx264 -profile:v high -level 5.0 '
            '-acodec copy "The Movie.mp4"'
        )
