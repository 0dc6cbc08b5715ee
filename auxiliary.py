#!/usr/bin/env python3
"""
Auxiliary utility functions for Kenosis

Small helpers shared by the CLI, the console output and the instance guard.
"""

import hashlib
import pathlib
from typing import Optional


def format_bytes(size_bytes: int) -> str:
    """Format byte size into human-readable string

    Args:
        size_bytes: Size in bytes to format

    Returns:
        Formatted string like "1.2 GiB", "345 MiB", "12 KiB", or "789 B"
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GiB"
    if size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MiB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    return f"{size_bytes} B"


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format file path for display by replacing home directory with ~

    Args:
        path: File path to format
        home_path: Home directory path (defaults to platform home)

    Returns:
        Path with home directory replaced by ~ if applicable
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())

    path = str(path)
    if path == home_path or path.startswith(home_path.rstrip("/") + "/"):
        return "~" + path[len(home_path.rstrip("/")) :]
    return path


def path_digest(path: pathlib.Path, length: int = 12) -> str:
    """Stable short digest of a resolved path, used to name per-target files"""
    resolved = str(pathlib.Path(path).resolve())
    return hashlib.sha1(resolved.encode("utf-8")).hexdigest()[:length]
