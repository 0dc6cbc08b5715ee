"""
Shared fixtures for kenosis tests
"""

import os
import pathlib
import subprocess
import sys

import pytest

import kenosis_config


def make_file(path: pathlib.Path, content: str = "x", mtime: float = None) -> pathlib.Path:
    """Create a file (and its parents), optionally with a fixed mtime"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


class StubProbe:
    """UsageProbe stand-in driven by a callable or a constant"""

    def __init__(self, usage):
        self.usage = usage
        self.calls = 0

    def percent_used(self, path):
        self.calls += 1
        if callable(self.usage):
            return self.usage(path)
        return self.usage


@pytest.fixture
def no_default_config(tmp_path, monkeypatch):
    """Keep a real ~/.kosmos/kenosis.toml out of the tests"""
    monkeypatch.setattr(kenosis_config, "DEFAULT_CONFIG_FILE", tmp_path / "absent" / "kenosis.toml")


@pytest.fixture
def live_pid():
    """PID of a process that stays alive for the duration of the test"""
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    yield proc.pid
    proc.kill()
    proc.wait()


@pytest.fixture
def dead_pid():
    """PID of a process that has already exited"""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid
