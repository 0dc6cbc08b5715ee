#!/usr/bin/env python3
"""
Exception hierarchy for Kenosis

Configuration problems abort before anything is deleted, concurrency problems
are reported as a skipped run, and eviction problems abort the run after the
earlier phases have already been applied.
"""


class KenosisError(Exception):
    """Base class for all kenosis errors"""

    exit_code = 1


class ConfigurationError(KenosisError):
    """Invalid thresholds, target path, log destination or config file"""


class InvalidDurationFormat(ConfigurationError):
    """A duration expression could not be parsed to a positive number of minutes"""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid duration '{expression}': {reason}")


class ConcurrencyError(KenosisError):
    """Another run interferes with this one"""

    exit_code = 0


class AlreadyRunning(ConcurrencyError):
    """A live process already holds the instance marker"""

    def __init__(self, marker_path, pid=None):
        self.marker_path = marker_path
        self.pid = pid
        owner = f"pid {pid}" if pid else "another process"
        super().__init__(f"Already running ({owner}, marker {marker_path})")


class EvictionError(KenosisError):
    """Usage-based eviction could not reach its goal"""

    exit_code = 2


class LoopDetected(EvictionError):
    """The file removed in the previous iteration was selected again"""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Loop detected: {path} selected twice in a row, usage is not going down")


class EvictionExhausted(EvictionError):
    """No candidate files are left while usage is still above the threshold"""

    def __init__(self, usage: int, threshold: int):
        self.usage = usage
        self.threshold = threshold
        super().__init__(f"Nothing left to remove, usage still {usage}% (threshold {threshold}%)")


class EvictionLimitReached(EvictionError):
    """The configured cap on removals per run was hit before reaching the threshold"""

    def __init__(self, limit: int, usage: int, threshold: int):
        self.limit = limit
        self.usage = usage
        self.threshold = threshold
        super().__init__(f"Removed {limit} files without reaching {threshold}% (usage {usage}%)")


class UnsupportedDryRunWithEviction(EvictionError):
    """Usage-based eviction has no dry-run mode"""

    def __init__(self):
        super().__init__("Dry run is not supported together with a usage threshold")
