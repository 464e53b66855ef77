"""
castcompat Test Configuration and Fixtures

Provides:
- A fake prober with per-path call counters (no ffprobe needed)
- Fake ffmpeg/ffprobe executables written as small scripts
- Auto-generated test media when a real ffmpeg is installed
- Shared fixtures for config, service and API client
"""

import asyncio
import os
import shutil
import stat
import subprocess
import sys
import textwrap
from collections import Counter
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from fastapi.testclient import TestClient

from castcompat.api import create_app
from castcompat.compat import ProbeMetadata, parse_ffprobe_output
from castcompat.config import CastCompatConfig, set_config
from castcompat.service import CompatService, set_service


# =============================================================================
# METADATA HELPERS
# =============================================================================

def make_ffprobe_output(
    video: Optional[tuple] = ("h264", "High", 41),
    audio: Optional[Union[str, List[str]]] = "aac",
    format_name: str = "mov,mp4,m4a,3gp,3g2,mj2",
    extra_streams: Optional[List[Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """Build an ffprobe JSON document with the given streams."""
    streams: List[Dict[str, Any]] = []
    if video is not None:
        codec, profile, level = video
        streams.append({
            "index": len(streams),
            "codec_type": "video",
            "codec_name": codec,
            "profile": profile,
            "level": level,
            "disposition": {"default": 1},
        })
    if audio is not None:
        for codec in ([audio] if isinstance(audio, str) else audio):
            streams.append({
                "index": len(streams),
                "codec_type": "audio",
                "codec_name": codec,
                "disposition": {"default": 0},
            })
    streams.extend(extra_streams or [])
    return {
        "streams": streams,
        "format": {"format_name": format_name, "duration": "60.0", "size": "1048576"},
    }


def make_metadata(**kwargs) -> ProbeMetadata:
    return parse_ffprobe_output(make_ffprobe_output(**kwargs))


class FakeProber:
    """
    Stands in for ffprobe.

    Results are looked up by file name; anything not registered gets the
    default metadata. Calls are counted per canonical path.
    """

    def __init__(self, default: Optional[ProbeMetadata] = None, delay: float = 0.0):
        self.default = default or make_metadata()
        self.results: Dict[str, Union[ProbeMetadata, Exception]] = {}
        self.calls: Counter = Counter()
        self.delay = delay

    def set_result(self, name: str, result: Union[ProbeMetadata, Exception]) -> None:
        self.results[name] = result

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def probe(self, path) -> ProbeMetadata:
        path = str(path)
        self.calls[path] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.get(os.path.basename(path), self.default)
        if isinstance(result, Exception):
            raise result
        return result


# =============================================================================
# FAKE EXECUTABLES
# =============================================================================

def write_script(directory: Path, name: str, body: str) -> str:
    """
    Write an executable that runs body as Python with the test interpreter.
    A shell wrapper execs Python so signals reach the script directly.
    """
    directory.mkdir(parents=True, exist_ok=True)
    script = directory / f"{name}.py"
    script.write_text("import os, sys, time, json\n" + textwrap.dedent(body))

    wrapper = directory / name
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n')
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


@pytest.fixture
def fake_tool(tmp_path) -> Callable[[str, str], str]:
    """Factory for fake ffmpeg/ffprobe executables: fake_tool(name, body) -> path."""
    bin_dir = tmp_path / "bin"

    def make(name: str, body: str) -> str:
        return write_script(bin_dir, name, body)

    return make


# =============================================================================
# TEST MEDIA GENERATION
# =============================================================================

class TestMediaGenerator:
    """
    Generates test media files using FFmpeg.
    No external downloads - creates synthetic test videos.
    """

    __test__ = False

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._ffmpeg = shutil.which("ffmpeg")

    @property
    def has_ffmpeg(self) -> bool:
        return self._ffmpeg is not None and shutil.which("ffprobe") is not None

    def generate_test_video(
        self,
        name: str,
        container: str = "mp4",
        duration: int = 1,
        level: str = "4.1"
    ) -> Optional[Path]:
        """Generate a short H.264 High profile test video with AAC audio."""
        if not self.has_ffmpeg:
            return None

        output_path = self.output_dir / f"{name}.{container}"
        cmd = [
            self._ffmpeg, "-y",
            "-f", "lavfi", "-i", f"testsrc=duration={duration}:size=320x240:rate=25",
            "-f", "lavfi", "-i", f"sine=frequency=440:duration={duration}",
            "-c:v", "libx264", "-profile:v", "high", "-level", level,
            "-preset", "ultrafast", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "64k",
            str(output_path),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, timeout=60)
        except (subprocess.TimeoutExpired, OSError):
            return None
        if result.returncode == 0 and output_path.exists():
            return output_path
        return None


@pytest.fixture(scope="session")
def media_generator(tmp_path_factory) -> TestMediaGenerator:
    """Session-scoped media generator."""
    return TestMediaGenerator(tmp_path_factory.mktemp("castcompat_test_media"))


# =============================================================================
# PYTEST FIXTURES
# =============================================================================

@pytest.fixture
def media_root(tmp_path) -> Path:
    """
    A small library:
        Movies/movie.mkv, Movies/movie.srt, Movies/clip.mp4
        Movies/Extras/ (empty dir)
        show.webm, .hidden.mp4
    """
    root = tmp_path / "media"
    movies = root / "Movies"
    (movies / "Extras").mkdir(parents=True)
    (movies / "movie.mkv").write_bytes(b"\x1a\x45\xdf\xa3 fake matroska")
    (movies / "movie.srt").write_text("1\n00:00:01,000 --> 00:00:02,000\nHello\n")
    (movies / "clip.mp4").write_bytes(b"fake mp4")
    (root / "show.webm").write_bytes(b"fake webm")
    (root / ".hidden.mp4").write_bytes(b"hidden")
    return root


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def test_config(media_root) -> CastCompatConfig:
    """Configuration pointing at the temp library."""
    config = CastCompatConfig()
    config.library.media_root = str(media_root)
    config.transcoding.ffmpeg_path = "ffmpeg"
    config.transcoding.subtitles_supported = "false"
    config.logging.level = "WARNING"  # Less noise in tests
    set_config(config)
    yield config
    set_config(CastCompatConfig())


@pytest.fixture
def service(test_config, fake_prober) -> CompatService:
    return CompatService(test_config, prober=fake_prober)


@pytest.fixture
def api_client(test_config, service):
    """Test client for API endpoints, with the fake-prober service injected."""
    with TestClient(create_app(test_config, service)) as client:
        yield client
    set_service(None)


# =============================================================================
# SKIP CONDITIONS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "requires_ffmpeg: marks tests that require FFmpeg"
    )


@pytest.fixture
def requires_ffmpeg():
    """Skip test if FFmpeg not available."""
    if not shutil.which("ffmpeg") or not shutil.which("ffprobe"):
        pytest.skip("FFmpeg not available")


@pytest.fixture
def sink_collector():
    """An async sink that records every chunk written to it."""

    class Collector:
        def __init__(self):
            self.chunks: List[bytes] = []

        async def __call__(self, chunk: bytes) -> None:
            self.chunks.append(chunk)

        @property
        def data(self) -> bytes:
            return b"".join(self.chunks)

    return Collector()
