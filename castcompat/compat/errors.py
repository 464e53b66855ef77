"""
Exception types raised by the compatibility and streaming components.
"""

from typing import Optional


class CastCompatError(Exception):
    """Base class for all castcompat errors."""


class ProbeError(CastCompatError):
    """ffprobe could not read the file (missing tool, corrupt media, timeout)."""

    def __init__(self, message: str, stderr: Optional[str] = None, returncode: Optional[int] = None):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class FilesystemError(CastCompatError):
    """A path is missing, unreadable, or escapes the media root."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class EngineError(CastCompatError):
    """ffmpeg could not be started or exited with an error status."""

    def __init__(self, message: str, returncode: Optional[int] = None, diagnostic: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.diagnostic = diagnostic


class EngineTerminated(CastCompatError):
    """ffmpeg was stopped by the consumer going away or by cancellation."""
