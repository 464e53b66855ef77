"""
Device compatibility classification.

Decides, per stream and for the container, whether a file plays natively on
the receiver described by DeviceConfig, and which transcode each stream
needs otherwise.
"""

import logging
import os
from typing import Optional, List

from ..config import DeviceConfig
from .commands import CommandBuilder
from .constants import SUBTITLE_EXTENSION
from .models import (
    AudioTranscode, CodecType, CompatibilityResult, ProbeMetadata, StreamInfo, VideoTranscode
)

logger = logging.getLogger(__name__)


def select_stream(streams: List[StreamInfo]) -> Optional[StreamInfo]:
    """Pick the stream a player would start with: default-flagged, else the first."""
    for stream in streams:
        if stream.is_default:
            return stream
    return streams[0] if streams else None


def find_subtitle_file(path: str) -> Optional[str]:
    """Return <dir>/<stem>.srt when it exists beside path."""
    stem = os.path.splitext(os.path.basename(path))[0]
    candidate = os.path.join(os.path.dirname(path), stem + SUBTITLE_EXTENSION)
    return candidate if os.path.isfile(candidate) else None


class CompatibilityClassifier:
    """Classifies probe metadata against a device profile. Never raises."""

    def __init__(self, device: Optional[DeviceConfig] = None, command_builder: Optional[CommandBuilder] = None):
        self.device = device or DeviceConfig()
        self.command_builder = command_builder or CommandBuilder()
        self._video_codecs = {c.lower() for c in self.device.video_codecs}
        self._video_profiles = {p.lower() for p in self.device.video_profiles}
        self._video_levels = set(self.device.video_levels)
        self._audio_codecs = {c.lower() for c in self.device.audio_codecs}
        self._containers = {c.lower() for c in self.device.containers}

    def is_video_compatible(self, stream: StreamInfo) -> bool:
        return (
            (stream.codec_name or "").lower() in self._video_codecs
            and (stream.profile or "").lower() in self._video_profiles
            and stream.level in self._video_levels
        )

    def is_audio_compatible(self, stream: StreamInfo) -> bool:
        return (stream.codec_name or "").lower() in self._audio_codecs

    def is_container_compatible(self, metadata: ProbeMetadata) -> bool:
        return bool({name.lower() for name in metadata.format_names} & self._containers)

    def classify(self, path: str, metadata: Optional[ProbeMetadata]) -> CompatibilityResult:
        subtitle_file = find_subtitle_file(path)

        if metadata is None:
            # Nothing known about the file, assume it will not play
            return CompatibilityResult(
                path=path,
                recommended_command=self.command_builder.recommended_command(path, None, None),
                subtitle_file=subtitle_file,
            )

        video_compatible = False
        video_transcode = None
        video = select_stream(metadata.streams_of(CodecType.VIDEO))
        if video is not None:
            video_compatible = self.is_video_compatible(video)
            video_transcode = VideoTranscode.COPY if video_compatible else VideoTranscode.REENCODE

        audio_compatible = False
        audio_transcode = None
        audio = select_stream(metadata.streams_of(CodecType.AUDIO))
        if audio is not None:
            audio_compatible = self.is_audio_compatible(audio)
            audio_transcode = AudioTranscode.COPY if audio_compatible else AudioTranscode.REENCODE

        result = CompatibilityResult(
            path=path,
            audio_compatible=audio_compatible,
            video_compatible=video_compatible,
            container_compatible=self.is_container_compatible(metadata),
            audio_transcode=audio_transcode,
            video_transcode=video_transcode,
            recommended_command=self.command_builder.recommended_command(
                path, video_transcode, audio_transcode
            ),
            subtitle_file=subtitle_file,
            metadata=metadata,
        )
        logger.debug(
            f"[Classify] {os.path.basename(path)}: video={video_compatible} "
            f"audio={audio_compatible} container={result.container_compatible}"
        )
        return result
