#!/usr/bin/env python3
"""Filesystem usage measurement"""

import pathlib
import shutil


def percent_used(path: pathlib.Path) -> int:
    """Whole-percent usage of the filesystem backing path

    Computed like df: used / (used + available to unprivileged users),
    so blocks reserved for root count as neither. Fractions are floored.
    """
    usage = shutil.disk_usage(path)
    capacity = usage.used + usage.free
    if capacity <= 0:
        return 0
    return min(100, usage.used * 100 // capacity)


class UsageProbe:
    """Reports the used-space percentage for a path; swap out in tests"""

    def percent_used(self, path: pathlib.Path) -> int:
        return percent_used(path)
