"""
Path helpers that keep user-supplied relative paths inside the media root.
"""

from pathlib import Path
from typing import Union

from .errors import FilesystemError


def safe_join(root: Union[str, Path], rel: Union[str, Path]) -> Path:
    """
    Join root and a relative path, ensuring the result stays inside root.
    Raises FilesystemError if the path escapes.
    """
    base = Path(root).expanduser().resolve()
    rel = str(rel).lstrip("/\\")
    target = (base / rel).resolve()
    try:
        target.relative_to(base)
    except ValueError as e:
        raise FilesystemError(f"Path {rel!r} escapes media root", path=str(target)) from e
    return target
