#!/usr/bin/env python3
"""
Single-instance guard

Keeps two runs against the same target from interleaving deletions. The
marker file holds the owner's PID for humans and for the liveness check,
and an exclusive flock on it makes acquisition atomic between processes.
"""

import fcntl
import os
import pathlib
import tempfile
from typing import Optional

from auxiliary import path_digest
from kenosis_errors import AlreadyRunning

MARKER_PREFIX = "kenosis"
LOCK_ATTEMPTS = 5


def default_state_dir() -> pathlib.Path:
    """Well-known runtime-state directory for marker files"""
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir and os.path.isdir(runtime_dir) and os.access(runtime_dir, os.W_OK):
        return pathlib.Path(runtime_dir)
    for candidate in ("/run/lock", "/var/lock"):
        if os.path.isdir(candidate) and os.access(candidate, os.W_OK):
            return pathlib.Path(candidate)
    return pathlib.Path(tempfile.gettempdir())


def marker_path_for(target: pathlib.Path, state_dir: Optional[pathlib.Path] = None) -> pathlib.Path:
    """Marker file for a target, suffixed so different targets never block each other"""
    state_dir = pathlib.Path(state_dir) if state_dir else default_state_dir()
    return state_dir / f"{MARKER_PREFIX}-{path_digest(target)}.pid"


def pid_alive(pid: int) -> bool:
    """Check whether a process with this PID exists"""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # Exists, owned by someone else
    return True


class SingleInstanceGuard:
    """PID marker plus advisory lock, usable as a context manager"""

    def __init__(self, marker_path: pathlib.Path):
        self.marker_path = pathlib.Path(marker_path)
        self._fd: Optional[int] = None

    @property
    def acquired(self) -> bool:
        return self._fd is not None

    def read_marker(self) -> Optional[int]:
        """PID recorded in the marker, or None if missing or unreadable"""
        try:
            content = self.marker_path.read_text().strip()
        except OSError:
            return None
        try:
            return int(content.split()[0]) if content else None
        except ValueError:
            return None

    def acquire(self):
        """Take ownership of the marker

        Raises:
            AlreadyRunning: the marker names a live process, or its lock is held
        """
        if self.acquired:
            return

        recorded_pid = self.read_marker()
        if recorded_pid and recorded_pid != os.getpid() and pid_alive(recorded_pid):
            raise AlreadyRunning(self.marker_path, recorded_pid)

        self.marker_path.parent.mkdir(parents=True, exist_ok=True)
        for _attempt in range(LOCK_ATTEMPTS):
            fd = os.open(self.marker_path, os.O_RDWR | os.O_CREAT, 0o644)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                os.close(fd)
                raise AlreadyRunning(self.marker_path, self.read_marker()) from None
            if self._is_current_marker(fd):
                break
            # Locked a marker its owner unlinked on release; start over on the new one
            os.close(fd)
        else:
            raise AlreadyRunning(self.marker_path, self.read_marker())

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        os.fsync(fd)
        self._fd = fd

    def _is_current_marker(self, fd: int) -> bool:
        """Check that fd still refers to the file at marker_path"""
        try:
            on_disk = os.stat(self.marker_path)
        except FileNotFoundError:
            return False
        held = os.fstat(fd)
        return (held.st_dev, held.st_ino) == (on_disk.st_dev, on_disk.st_ino)

    def release(self):
        """Remove the marker and drop the lock; safe to call more than once"""
        if self._fd is None:
            return
        try:
            self.marker_path.unlink(missing_ok=True)
        finally:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "SingleInstanceGuard":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
