"""
Directory listing with optional per-file compatibility classification.
"""

import asyncio
import logging
import os
from typing import Awaitable, Callable, Dict, List, Optional, Union
from pathlib import Path

from .errors import CastCompatError, FilesystemError
from .models import CompatibilityResult, DirectoryEntryResult, FileStats
from .paths import safe_join

logger = logging.getLogger(__name__)

FileClassifier = Callable[[str], Awaitable[CompatibilityResult]]


class DirectoryScanner:
    """
    Lists one directory level and classifies its regular files.

    Classification runs through a bounded pool so a large directory does not
    spawn one ffprobe per file at once. A failure on one entry leaves that
    entry unclassified and never aborts its siblings.
    """

    def __init__(self, classify_file: FileClassifier, concurrency: int = 4, include_hidden: bool = True):
        self.classify_file = classify_file
        self.concurrency = max(1, concurrency)
        self.include_hidden = include_hidden

    def _list_entries(self, directory: Path) -> List[str]:
        try:
            names = sorted(os.listdir(directory))
        except FileNotFoundError as e:
            raise FilesystemError(f"Directory not found: {directory}", path=str(directory)) from e
        except NotADirectoryError as e:
            raise FilesystemError(f"Not a directory: {directory}", path=str(directory)) from e
        except OSError as e:
            raise FilesystemError(f"Cannot list {directory}: {e}", path=str(directory)) from e

        if not self.include_hidden:
            names = [n for n in names if not n.startswith(".")]
        return names

    async def scan(
        self,
        base_dir: Union[str, Path],
        sub_dir: str = "",
        classify: bool = False
    ) -> Dict[str, DirectoryEntryResult]:
        """
        Scan base_dir/sub_dir.

        Returns:
            Mapping of entry path relative to base_dir to its result.

        Raises:
            FilesystemError: the directory is missing, unreadable, or outside base_dir.
        """
        directory = safe_join(base_dir, sub_dir)
        results: Dict[str, DirectoryEntryResult] = {}
        to_check: List[str] = []

        for name in self._list_entries(directory):
            key = os.path.join(sub_dir, name) if sub_dir else name
            try:
                stats = FileStats.from_stat_result(os.stat(directory / name))
            except OSError as e:
                # Vanished or unreadable between listing and stat
                logger.warning(f"[Scan] Skipping {key}: {e}")
                continue

            results[key] = DirectoryEntryResult(is_dir=stats.is_dir, stats=stats)
            if stats.is_file:
                to_check.append(key)

        if classify and to_check:
            logger.info(f"[Scan] Checking compatibility of {len(to_check)} files in {directory}")
            semaphore = asyncio.Semaphore(self.concurrency)

            async def check(key: str) -> None:
                async with semaphore:
                    compatibility = await self._classify_entry(str(directory / os.path.basename(key)), key)
                if compatibility is not None:
                    results[key].compatibility = compatibility
                    results[key].compatible = compatibility.compatible

            await asyncio.gather(*(check(key) for key in to_check))

        return results

    async def _classify_entry(self, path: str, key: str) -> Optional[CompatibilityResult]:
        try:
            return await self.classify_file(path)
        except (CastCompatError, OSError) as e:
            logger.warning(f"[Scan] Could not classify {key}: {e}")
            return None
