"""
Compatibility classification and transcode streaming for castcompat.
"""

from .models import (
    CodecType,
    VideoTranscode,
    AudioTranscode,
    StreamInfo,
    ProbeMetadata,
    ProbeRecord,
    CompatibilityResult,
    FileStats,
    DirectoryEntryResult,
    StreamOptions,
    SessionState,
    TranscodeOutcome,
)
from .errors import CastCompatError, ProbeError, FilesystemError, EngineError, EngineTerminated
from .probe import MediaProbe, parse_ffprobe_output
from .cache import ProbeCache, CacheStats
from .classifier import CompatibilityClassifier, select_stream, find_subtitle_file
from .commands import CommandBuilder, escape_filter_path
from .scanner import DirectoryScanner
from .streamer import TranscodeSession, TranscodeStreamer
from .error_classifier import ErrorClassifier, get_error_classifier

__all__ = [
    # Models
    "CodecType",
    "VideoTranscode",
    "AudioTranscode",
    "StreamInfo",
    "ProbeMetadata",
    "ProbeRecord",
    "CompatibilityResult",
    "FileStats",
    "DirectoryEntryResult",
    "StreamOptions",
    "SessionState",
    "TranscodeOutcome",
    # Errors
    "CastCompatError",
    "ProbeError",
    "FilesystemError",
    "EngineError",
    "EngineTerminated",
    # Components
    "MediaProbe",
    "parse_ffprobe_output",
    "ProbeCache",
    "CacheStats",
    "CompatibilityClassifier",
    "select_stream",
    "find_subtitle_file",
    "CommandBuilder",
    "escape_filter_path",
    "DirectoryScanner",
    "TranscodeSession",
    "TranscodeStreamer",
    "ErrorClassifier",
    "get_error_classifier",
]
