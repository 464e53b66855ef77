"""
Service facade wiring the probe cache, classifier, scanner and streamer.

One CompatService is built per process (by the API lifespan or the CLI) and
every component receives the same ProbeCache instance from it.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Dict, Optional, Union

from .config import CastCompatConfig, get_config
from .compat import (
    CommandBuilder,
    CompatibilityClassifier,
    CompatibilityResult,
    DirectoryEntryResult,
    DirectoryScanner,
    MediaProbe,
    ProbeCache,
    ProbeError,
    StreamOptions,
    TranscodeOutcome,
    TranscodeSession,
    TranscodeStreamer,
)
from .compat.cache import Prober
from .compat.constants import FORMAT_MEDIA_TYPES
from .compat.paths import safe_join
from .compat.streamer import CompletionCallback, OutputSink

logger = logging.getLogger(__name__)


class CompatService:
    """Entry point for file checks, directory listings and transcode streams."""

    def __init__(
        self,
        config: Optional[CastCompatConfig] = None,
        prober: Optional[Prober] = None,
        cache: Optional[ProbeCache] = None
    ):
        self.config = config or get_config()
        self.prober = prober or MediaProbe(
            self.config.probe.ffprobe_path,
            self.config.probe.timeout_seconds
        )
        self.cache = cache or ProbeCache(self.prober)
        self.command_builder = CommandBuilder(
            self._find_ffmpeg(),
            self.config.transcoding.output_format
        )
        self.classifier = CompatibilityClassifier(self.config.device, self.command_builder)
        self.scanner = DirectoryScanner(
            self.get_file_compatibility,
            concurrency=self.config.library.scan_concurrency,
            include_hidden=self.config.library.include_hidden,
        )
        self.streamer = TranscodeStreamer(
            self.cache,
            self.classifier,
            self.command_builder,
            self.config.transcoding,
        )

    def _find_ffmpeg(self) -> str:
        """Find ffmpeg executable."""
        configured = self.config.transcoding.ffmpeg_path
        if configured != "auto":
            return configured
        return shutil.which("ffmpeg") or "ffmpeg"

    @property
    def media_root(self) -> Path:
        return Path(self.config.library.media_root).expanduser().resolve()

    @property
    def media_type(self) -> str:
        return FORMAT_MEDIA_TYPES.get(self.config.transcoding.output_format, "application/octet-stream")

    def resolve_media_path(self, rel_path: str) -> str:
        """Map a library-relative path to an absolute one inside the media root."""
        return str(safe_join(self.media_root, rel_path))

    async def get_file_compatibility(self, path: Union[str, Path]) -> CompatibilityResult:
        """
        Classify one file.

        A probe failure yields an all-incompatible result rather than an error.

        Raises:
            FilesystemError: the file does not exist or cannot be stat-ed.
        """
        path = str(path)
        try:
            metadata = await self.cache.get_metadata(path)
        except ProbeError as e:
            logger.warning(f"[Probe] Failed for {path}: {e}")
            metadata = None
        return self.classifier.classify(path, metadata)

    async def get_directory_listing(
        self,
        base_dir: Union[str, Path],
        sub_dir: str = "",
        include_compatibility: bool = False
    ) -> Dict[str, DirectoryEntryResult]:
        return await self.scanner.scan(base_dir, sub_dir, include_compatibility)

    async def open_stream_session(
        self,
        path: str,
        options: Optional[StreamOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_complete: Optional[CompletionCallback] = None
    ) -> TranscodeSession:
        return await self.streamer.open_session(path, options, cancel_event, on_complete)

    async def stream_transcode(
        self,
        path: str,
        sink: OutputSink,
        options: Optional[StreamOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_complete: Optional[CompletionCallback] = None
    ) -> TranscodeOutcome:
        return await self.streamer.stream_transcode(path, sink, options, cancel_event, on_complete)


# Global service instance
_service: Optional[CompatService] = None


def get_service() -> CompatService:
    """Get the global service instance."""
    global _service
    if _service is None:
        _service = CompatService()
    return _service


def set_service(service: Optional[CompatService]) -> None:
    """Set the global service instance."""
    global _service
    _service = service
