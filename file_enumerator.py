#!/usr/bin/env python3
"""
File Enumerator Module for Kenosis

Lists the entries each cleanup phase works on: regular files, files older
than an age limit, the oldest file for eviction, and empty directories.
Every listing applies the same ExclusionSet, and excluded directories are
not descended into.
"""

import fnmatch
import os
import pathlib
import stat
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional


class EntryType(Enum):
    """Kind of entry a listing produces"""

    REGULAR_FILE = "file"
    EMPTY_DIRECTORY = "empty_dir"


@dataclass(frozen=True)
class CandidateFile:
    """A file considered for eviction, keyed by modification time"""

    mtime: float
    path: pathlib.Path


class ExclusionSet:
    """Shell-style exclusion patterns applied to every enumeration"""

    def __init__(self, patterns: Optional[list[str]] = None):
        self._patterns: list[str] = []
        for pattern in patterns or []:
            self.add(pattern)

    def add(self, pattern: str):
        """Append a pattern; empty patterns are ignored"""
        if not pattern or not pattern.strip():
            return
        pattern = pattern.strip()
        if len(pattern) > 1:
            pattern = pattern.rstrip("/")
        self._patterns.append(pattern)

    def as_filter_args(self) -> list[str]:
        """Patterns in the order they were added"""
        return list(self._patterns)

    def matches(self, path: pathlib.Path) -> bool:
        """Check whether a path is excluded by any pattern

        A pattern matches either the full path or the entry name. As with
        ``find -path``, ``*`` also matches across ``/``.
        """
        path_str = str(path)
        name = os.path.basename(path_str)
        for pattern in self._patterns:
            if fnmatch.fnmatchcase(path_str, pattern) or fnmatch.fnmatchcase(name, pattern):
                return True
        return False

    def __len__(self) -> int:
        return len(self._patterns)


class FileEnumerator:
    """Eager, exclusion-aware listings of a target tree"""

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize enumerator

        Args:
            clock: Returns the current time as a UNIX timestamp, used for age checks
        """
        self.clock = clock

    def _walk_files(
        self, root: pathlib.Path, exclusions: ExclusionSet
    ) -> Iterator[tuple[pathlib.Path, os.stat_result]]:
        """Yield (path, lstat) for every non-excluded regular file under root"""
        root = pathlib.Path(root)
        if exclusions.matches(root):
            return

        try:
            root_stat = root.lstat()
        except OSError:
            return
        if stat.S_ISREG(root_stat.st_mode):
            yield root, root_stat
            return
        if not stat.S_ISDIR(root_stat.st_mode):
            return

        for dirpath, dirnames, filenames in os.walk(root, topdown=True, followlinks=False):
            # Prune excluded directories so nothing beneath them is listed
            dirnames[:] = [d for d in dirnames if not exclusions.matches(pathlib.Path(dirpath) / d)]

            for filename in filenames:
                file_path = pathlib.Path(dirpath) / filename
                if exclusions.matches(file_path):
                    continue
                try:
                    file_stat = file_path.lstat()
                except OSError:
                    continue  # Vanished or unreadable
                if stat.S_ISREG(file_stat.st_mode):
                    yield file_path, file_stat

    def list_files(self, root: pathlib.Path, exclusions: ExclusionSet) -> list[pathlib.Path]:
        """List regular files under root, recursively"""
        return [path for path, _st in self._walk_files(root, exclusions)]

    def list_files_older_than(
        self, root: pathlib.Path, exclusions: ExclusionSet, min_minutes_old: int
    ) -> list[pathlib.Path]:
        """List regular files whose status-change time is older than the given age

        Args:
            root: Target file or directory
            exclusions: Patterns to leave out
            min_minutes_old: Age in minutes a file must exceed

        Returns:
            Matching paths in enumeration order
        """
        now = self.clock()
        age_seconds = min_minutes_old * 60
        # Older than the epoch matches nothing, and would overflow a float
        if age_seconds >= now:
            return []
        cutoff = now - age_seconds
        return [path for path, st in self._walk_files(root, exclusions) if st.st_ctime < cutoff]

    def oldest_file(self, root: pathlib.Path, exclusions: ExclusionSet) -> Optional[CandidateFile]:
        """Return the least recently modified file, or None when there is none

        Ties keep enumeration order: the first file seen wins.
        """
        oldest = None
        for path, st in self._walk_files(root, exclusions):
            if oldest is None or st.st_mtime < oldest.mtime:
                oldest = CandidateFile(st.st_mtime, path)
        return oldest

    def list_empty_directories(self, root: pathlib.Path, exclusions: ExclusionSet) -> list[pathlib.Path]:
        """List directories below root that have no entries, deepest first

        The root itself is never listed. A parent that only becomes empty
        once its empty children are removed is not listed either.
        """
        root = pathlib.Path(root)
        if exclusions.matches(root) or not root.is_dir() or root.is_symlink():
            return []

        empty_dirs = []
        for dirpath, dirnames, filenames in os.walk(root, topdown=True, followlinks=False):
            current = pathlib.Path(dirpath)
            if current != root and not dirnames and not filenames:
                empty_dirs.append(current)
            dirnames[:] = [d for d in dirnames if not exclusions.matches(current / d)]

        empty_dirs.sort(key=lambda p: len(p.parts), reverse=True)
        return empty_dirs
