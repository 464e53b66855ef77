"""
ffmpeg error classification for failed streaming sessions.

Turns the engine's stderr tail into a short description so callers get
something more useful than a raw log dump. Sessions are never retried.
"""

from dataclasses import dataclass
from typing import List, Tuple, Optional


@dataclass
class EngineErrorPattern:
    """Represents a classified ffmpeg error."""
    pattern: str
    category: str  # 'input', 'subtitle', 'encoder', 'resource', 'output'
    description: str


# Ordered most specific first
ENGINE_ERROR_MAP: List[EngineErrorPattern] = [
    # Source file problems
    EngineErrorPattern("no such file", "input", "Source file not found"),
    EngineErrorPattern("permission denied", "input", "Permission denied"),
    EngineErrorPattern("moov atom not found", "input", "Invalid MP4 file"),
    EngineErrorPattern("invalid data found", "input", "Invalid input data"),
    EngineErrorPattern("end of file", "input", "Unexpected end of file"),
    EngineErrorPattern("stream map", "input", "Requested stream does not exist"),

    # Subtitle burn-in
    EngineErrorPattern("unable to open", "subtitle", "Subtitle file could not be opened"),
    EngineErrorPattern("no such filter: 'subtitles'", "subtitle", "Subtitle filter not available"),
    EngineErrorPattern("error initializing filter", "subtitle", "Filter initialization failed"),

    # Encoders
    EngineErrorPattern("unknown encoder", "encoder", "Encoder not available"),
    EngineErrorPattern("encoder not found", "encoder", "Encoder not available"),
    EngineErrorPattern("codec not currently supported in container", "encoder",
                       "Codec not supported by output container"),
    EngineErrorPattern("error while opening encoder", "encoder", "Encoder rejected parameters"),
    EngineErrorPattern("invalid argument", "encoder", "Invalid argument"),

    # Resources
    EngineErrorPattern("out of memory", "resource", "Out of memory"),
    EngineErrorPattern("cannot allocate", "resource", "Memory allocation failed"),
    EngineErrorPattern("too many open files", "resource", "File descriptor limit"),

    # Output pipe
    EngineErrorPattern("broken pipe", "output", "Consumer stopped reading"),
    EngineErrorPattern("error writing trailer", "output", "Output could not be finalized"),
]


class ErrorClassifier:
    """Classifies ffmpeg errors by matching known stderr fragments."""

    def __init__(self, error_map: Optional[List[EngineErrorPattern]] = None):
        self.error_map = error_map or ENGINE_ERROR_MAP

    def classify(self, error_msg: str) -> Tuple[Optional[EngineErrorPattern], str]:
        """
        Classify ffmpeg error output.

        Returns:
            Tuple of (matched_error, category). Category is 'unknown' if no match.
        """
        error_lower = error_msg.lower()

        for error in self.error_map:
            if error.pattern in error_lower:
                return error, error.category

        return None, "unknown"

    def get_error_description(self, error_msg: str) -> str:
        """Get human-readable description of the error."""
        error, _ = self.classify(error_msg)
        if error:
            return error.description
        return "Unknown error"


# Global classifier instance
_classifier: Optional[ErrorClassifier] = None


def get_error_classifier() -> ErrorClassifier:
    """Get or create the global error classifier."""
    global _classifier
    if _classifier is None:
        _classifier = ErrorClassifier()
    return _classifier
