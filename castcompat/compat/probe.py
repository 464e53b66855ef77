"""
ffprobe runner producing ProbeMetadata.
"""

import asyncio
import json
import logging
import shutil
from pathlib import Path
from typing import Optional, Dict, Any, Union

from .errors import ProbeError
from .models import CodecType, ProbeMetadata, StreamInfo

logger = logging.getLogger(__name__)


class MediaProbe:
    """Runs ffprobe against local files."""

    def __init__(self, ffprobe_path: str = "auto", timeout: float = 30.0):
        self.ffprobe_path = self._find_ffprobe(ffprobe_path)
        self.timeout = timeout

    @staticmethod
    def _find_ffprobe(configured: str) -> str:
        """Find ffprobe executable."""
        if configured != "auto":
            return configured
        return shutil.which("ffprobe") or "ffprobe"

    async def probe(self, path: Union[str, Path]) -> ProbeMetadata:
        cmd = [
            self.ffprobe_path,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError(f"Failed to execute ffprobe: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ProbeError(f"ffprobe timed out after {self.timeout:.0f}s for {path}") from e

        stderr_text = stderr.decode("utf-8", errors="ignore")
        if process.returncode != 0:
            raise ProbeError(
                f"ffprobe returned exit code {process.returncode} for {path}",
                stderr=stderr_text,
                returncode=process.returncode,
            )

        try:
            data = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError(f"ffprobe produced invalid JSON for {path}", stderr=stderr_text) from e

        logger.debug(f"[Probe] {path}: {len(data.get('streams') or [])} streams")
        return parse_ffprobe_output(data)


def parse_ffprobe_output(data: Dict[str, Any]) -> ProbeMetadata:
    """Convert ffprobe's JSON document into ProbeMetadata."""
    fmt = data.get("format") or {}
    streams = []

    for position, raw in enumerate(data.get("streams") or []):
        disposition = raw.get("disposition") or {}
        tags = raw.get("tags") or {}
        streams.append(StreamInfo(
            index=_parse_int(raw.get("index"), position),
            codec_type=CodecType.parse(raw.get("codec_type")),
            codec_name=raw.get("codec_name"),
            profile=raw.get("profile"),
            level=_parse_int(raw.get("level")),
            is_default=disposition.get("default") == 1,
            language=tags.get("language") if isinstance(tags, dict) else None,
        ))

    # ffprobe lists every format the container could be, e.g. "mov,mp4,m4a,3gp,3g2,mj2"
    format_name = fmt.get("format_name") or ""
    format_names = frozenset(name.strip() for name in format_name.split(",") if name.strip())

    return ProbeMetadata(
        streams=streams,
        format_names=format_names,
        duration=_parse_float(fmt.get("duration")),
        size=_parse_int(fmt.get("size")),
        raw=data,
    )


def _parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None:
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _parse_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
