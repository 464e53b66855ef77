"""
Data models for probing, classification, scanning and streaming.
"""

import os
import stat
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, FrozenSet, Dict, Any


class CodecType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CodecType":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class VideoTranscode(str, Enum):
    COPY = "copy"
    REENCODE = "reencode"

    @property
    def description(self) -> str:
        if self is VideoTranscode.COPY:
            return "copy video as-is"
        return "re-encode to H.264 High Profile level 5.0"


class AudioTranscode(str, Enum):
    COPY = "copy"
    REENCODE = "reencode"

    @property
    def description(self) -> str:
        if self is AudioTranscode.COPY:
            return "copy audio as-is"
        return "re-encode to AAC, quality target 100"


@dataclass(frozen=True)
class StreamInfo:
    """One media stream as reported by ffprobe."""
    index: int
    codec_type: CodecType
    codec_name: Optional[str] = None
    profile: Optional[str] = None
    level: Optional[int] = None
    is_default: bool = False
    language: Optional[str] = None


@dataclass(frozen=True)
class ProbeMetadata:
    """Parsed ffprobe output for one file."""
    streams: List[StreamInfo] = field(default_factory=list)
    format_names: FrozenSet[str] = frozenset()
    duration: Optional[float] = None
    size: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def streams_of(self, codec_type: CodecType) -> List[StreamInfo]:
        return [s for s in self.streams if s.codec_type == codec_type]


@dataclass
class ProbeRecord:
    mtime_at_probe: float
    metadata: ProbeMetadata


@dataclass(frozen=True)
class CompatibilityResult:
    """Outcome of classifying one file against the device profile."""
    path: str
    audio_compatible: bool = False
    video_compatible: bool = False
    container_compatible: bool = False
    audio_transcode: Optional[AudioTranscode] = None
    video_transcode: Optional[VideoTranscode] = None
    recommended_command: str = ""
    subtitle_file: Optional[str] = None
    metadata: Optional[ProbeMetadata] = None

    @property
    def compatible(self) -> bool:
        return self.audio_compatible and self.video_compatible and self.container_compatible


@dataclass(frozen=True)
class FileStats:
    size: int
    mtime: float
    mode: int
    is_dir: bool

    @classmethod
    def from_stat_result(cls, st: os.stat_result) -> "FileStats":
        return cls(
            size=st.st_size,
            mtime=st.st_mtime,
            mode=st.st_mode,
            is_dir=stat.S_ISDIR(st.st_mode),
        )

    @property
    def is_file(self) -> bool:
        return stat.S_ISREG(self.mode)


@dataclass
class DirectoryEntryResult:
    is_dir: bool
    stats: FileStats
    compatible: bool = False
    compatibility: Optional[CompatibilityResult] = None


@dataclass
class StreamOptions:
    use_subtitles: bool = False
    subtitle_path: Optional[str] = None
    audio_track: Optional[int] = None


class SessionState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TranscodeOutcome:
    state: SessionState
    exit_code: Optional[int] = None
    diagnostic: str = ""
    description: str = ""
    terminated_early: bool = False
    bytes_sent: int = 0

    @property
    def error(self) -> bool:
        return self.state == SessionState.FAILED
