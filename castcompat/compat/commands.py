"""
Renders typed transcode decisions into ffmpeg argument syntax.
"""

import os
from typing import List, Optional

from .constants import AUDIO_ARGS, VIDEO_ARGS, FRAGMENTED_MP4_FLAGS, RECOMMENDED_OUTPUT_EXTENSION
from .models import AudioTranscode, VideoTranscode


# Characters with meaning inside a filter option value, then inside a filtergraph
_OPTION_SPECIAL = "\\':"
_GRAPH_SPECIAL = "\\'[],;"


def _escape(value: str, special: str) -> str:
    return "".join("\\" + ch if ch in special else ch for ch in value)


def escape_filter_path(path: str) -> str:
    """Escape a file path for use as a filter option inside -vf."""
    return _escape(_escape(path, _OPTION_SPECIAL), _GRAPH_SPECIAL)


class CommandBuilder:
    """Builds ffmpeg commands for the advisory command and live streaming."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", output_format: str = "matroska"):
        self.ffmpeg_path = ffmpeg_path
        self.output_format = output_format

    @staticmethod
    def video_args(video: Optional[VideoTranscode]) -> List[str]:
        return list(VIDEO_ARGS[video]) if video is not None else []

    @staticmethod
    def audio_args(audio: Optional[AudioTranscode]) -> List[str]:
        return list(AUDIO_ARGS[audio]) if audio is not None else []

    def recommended_command(
        self,
        source: str,
        video: Optional[VideoTranscode],
        audio: Optional[AudioTranscode]
    ) -> str:
        """
        Human-readable ffmpeg invocation that converts source for the device.

        Paths are reduced to file names since the command is meant to be run
        from the file's own directory.
        """
        name = os.path.basename(source)
        stem = os.path.splitext(name)[0]
        parts = ["ffmpeg", "-i", f'"{name}"']
        parts.extend(self.video_args(video))
        parts.extend(self.audio_args(audio))
        parts.append(f'"{stem}{RECOMMENDED_OUTPUT_EXTENSION}"')
        return " ".join(parts)

    def build_stream_args(
        self,
        video: Optional[VideoTranscode],
        audio: Optional[AudioTranscode],
        subtitle_file: Optional[str] = None,
        audio_track: Optional[int] = None
    ) -> List[str]:
        """Encoding arguments for a streaming session, excluding input and output."""
        args: List[str] = []

        if audio_track is not None:
            args.extend(["-map", "0:v:0?", "-map", f"0:a:{audio_track}?"])

        args.extend(["-strict", "experimental"])
        args.extend(self.audio_args(audio))

        if subtitle_file:
            # Burning in subtitles means the video has to be re-encoded
            args.extend(self.video_args(VideoTranscode.REENCODE))
            args.extend(["-vf", f"subtitles=filename={escape_filter_path(subtitle_file)}"])
        else:
            args.extend(self.video_args(video))

        return args

    def build_stream_command(self, source: str, encoding_args: List[str]) -> List[str]:
        """Full ffmpeg command writing the encoded stream to stdout."""
        cmd = [self.ffmpeg_path, "-hide_banner", "-nostdin", "-i", source]
        cmd.extend(encoding_args)
        cmd.extend(["-f", self.output_format])
        if self.output_format == "mp4":
            cmd.extend(FRAGMENTED_MP4_FLAGS)
        cmd.append("pipe:1")
        return cmd
