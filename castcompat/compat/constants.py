"""
Constants for classification and ffmpeg command rendering.
"""

from typing import Dict, List

from .models import AudioTranscode, VideoTranscode


# ffmpeg arguments for each typed transcode decision
VIDEO_ARGS: Dict[VideoTranscode, List[str]] = {
    VideoTranscode.COPY: ["-vcodec", "copy"],
    VideoTranscode.REENCODE: ["-vcodec", "libx264", "-profile:v", "high", "-level", "5.0"],
}

AUDIO_ARGS: Dict[AudioTranscode, List[str]] = {
    AudioTranscode.COPY: ["-acodec", "copy"],
    AudioTranscode.REENCODE: ["-acodec", "aac", "-q:a", "100"],
}

SUBTITLE_EXTENSION = ".srt"
RECOMMENDED_OUTPUT_EXTENSION = ".mp4"

# Content types for the live output of a streaming session
FORMAT_MEDIA_TYPES: Dict[str, str] = {
    "matroska": "video/x-matroska",
    "webm": "video/webm",
    "mp4": "video/mp4",
}

# mp4 cannot be written to a pipe without fragmenting
FRAGMENTED_MP4_FLAGS = ["-movflags", "frag_keyframe+empty_moov+default_base_moof"]

# Graceful shutdown timings, in seconds
SIGINT_GRACE = 5.0
SIGTERM_GRACE = 3.0
