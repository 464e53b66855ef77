"""
API request/response models for castcompat
"""

import os
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from .compat import CompatibilityResult, DirectoryEntryResult, FileStats, StreamInfo


def relative_to_root(path: Optional[str], media_root: Optional[Path]) -> Optional[str]:
    """Express a server path relative to the media root."""
    if path is None or media_root is None:
        return path
    try:
        return str(Path(path).relative_to(media_root))
    except ValueError:
        return os.path.basename(path)


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    uptime_seconds: float
    cached_files: int = 0
    cache_stats: Dict[str, int] = Field(default_factory=dict)


class StreamInfoResponse(BaseModel):
    index: int
    codec_type: str
    codec_name: Optional[str] = None
    profile: Optional[str] = None
    level: Optional[int] = None
    is_default: bool = False
    language: Optional[str] = None

    @classmethod
    def from_stream(cls, stream: StreamInfo) -> "StreamInfoResponse":
        return cls(
            index=stream.index,
            codec_type=stream.codec_type.value,
            codec_name=stream.codec_name,
            profile=stream.profile,
            level=stream.level,
            is_default=stream.is_default,
            language=stream.language,
        )


class CompatibilityResponse(BaseModel):
    path: str
    compatible: bool
    audio: bool
    video: bool
    container: bool
    audio_transcode: Optional[str] = None
    video_transcode: Optional[str] = None
    audio_transcode_description: Optional[str] = None
    video_transcode_description: Optional[str] = None
    recommended_command: str = ""
    subtitle_file: Optional[str] = None
    probed: bool = False
    format_names: List[str] = Field(default_factory=list)
    streams: List[StreamInfoResponse] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls,
        result: CompatibilityResult,
        path: Optional[str] = None,
        media_root: Optional[Path] = None
    ) -> "CompatibilityResponse":
        metadata = result.metadata
        return cls(
            path=path or result.path,
            compatible=result.compatible,
            audio=result.audio_compatible,
            video=result.video_compatible,
            container=result.container_compatible,
            audio_transcode=result.audio_transcode.value if result.audio_transcode else None,
            video_transcode=result.video_transcode.value if result.video_transcode else None,
            audio_transcode_description=result.audio_transcode.description if result.audio_transcode else None,
            video_transcode_description=result.video_transcode.description if result.video_transcode else None,
            recommended_command=result.recommended_command,
            subtitle_file=relative_to_root(result.subtitle_file, media_root),
            probed=metadata is not None,
            format_names=sorted(metadata.format_names) if metadata else [],
            streams=[StreamInfoResponse.from_stream(s) for s in metadata.streams] if metadata else [],
        )


class FileStatsResponse(BaseModel):
    size: int
    mtime: float
    mode: int

    @classmethod
    def from_stats(cls, stats: FileStats) -> "FileStatsResponse":
        return cls(size=stats.size, mtime=stats.mtime, mode=stats.mode)


class DirectoryEntryResponse(BaseModel):
    is_dir: bool
    stats: FileStatsResponse
    compatible: bool = False
    compatibility: Optional[CompatibilityResponse] = None

    @classmethod
    def from_entry(
        cls,
        name: str,
        entry: DirectoryEntryResult,
        media_root: Optional[Path] = None
    ) -> "DirectoryEntryResponse":
        return cls(
            is_dir=entry.is_dir,
            stats=FileStatsResponse.from_stats(entry.stats),
            compatible=entry.compatible,
            compatibility=(
                CompatibilityResponse.from_result(entry.compatibility, path=name, media_root=media_root)
                if entry.compatibility else None
            ),
        )


class DirectoryListingResponse(BaseModel):
    directory: str
    entries: Dict[str, DirectoryEntryResponse] = Field(default_factory=dict)


class CacheClearResponse(BaseModel):
    cleared: int
