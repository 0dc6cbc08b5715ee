#!/usr/bin/env python3
"""
Usage-based eviction

Deletes the least recently modified file, one at a time, until the
filesystem backing the target reports usage at or below the threshold.
Usage is measured again after every removal since other processes may be
writing to the same filesystem.
"""

import logging
import pathlib
from dataclasses import dataclass, field
from typing import Optional

from file_enumerator import ExclusionSet, FileEnumerator
from file_operations import FileOperations, OperationResult
from kenosis_errors import (
    EvictionExhausted,
    EvictionLimitReached,
    LoopDetected,
    UnsupportedDryRunWithEviction,
)
from usage_probe import UsageProbe

logger = logging.getLogger("kenosis.audit")


@dataclass
class EvictionResult:
    """Outcome of one eviction run"""

    initial_usage: Optional[int] = None
    final_usage: Optional[int] = None
    removed: list[OperationResult] = field(default_factory=list)
    failed: list[OperationResult] = field(default_factory=list)

    @property
    def reclaimed_bytes(self) -> int:
        return sum(r.operation.size for r in self.removed)


class EvictionEngine:
    """Oldest-first eviction loop with non-progress detection"""

    def __init__(
        self,
        enumerator: FileEnumerator,
        probe: UsageProbe,
        file_ops: FileOperations,
        max_evictions: int = 0,
    ):
        """Initialize engine

        Args:
            enumerator: Source of candidate files
            probe: Usage measurement for the target's filesystem
            file_ops: Deletion primitive
            max_evictions: Stop with an error after this many removals (0 = no cap)
        """
        self.enumerator = enumerator
        self.probe = probe
        self.file_ops = file_ops
        self.max_evictions = max_evictions

    def run(
        self,
        root: pathlib.Path,
        exclusions: ExclusionSet,
        usage_threshold: int,
        dry_run: bool = False,
        result: Optional[EvictionResult] = None,
    ) -> EvictionResult:
        """Evict files until usage <= usage_threshold

        Args:
            root: Target whose filesystem is measured and whose files are evicted
            exclusions: Patterns never evicted
            usage_threshold: Goal percentage; 0 disables eviction
            dry_run: Must be False, eviction cannot be simulated
            result: Optional accumulator, filled in place so progress made
                before an error is visible to the caller

        Raises:
            UnsupportedDryRunWithEviction: dry_run requested with a threshold
            EvictionExhausted: no files left while usage is still too high
            LoopDetected: the previously removed path was selected again
            EvictionLimitReached: max_evictions removals did not suffice
        """
        if result is None:
            result = EvictionResult()
        if usage_threshold <= 0:
            return result
        if dry_run or self.file_ops.dry_run:
            raise UnsupportedDryRunWithEviction()

        # A single-file target is gone after its eviction, its directory is not
        root = pathlib.Path(root)
        measured = root if root.is_dir() else root.parent

        previous: Optional[pathlib.Path] = None
        attempts = 0
        while True:
            usage = self.probe.percent_used(measured)
            if result.initial_usage is None:
                result.initial_usage = usage
            result.final_usage = usage
            if usage <= usage_threshold:
                logger.debug("Usage %s%% is within threshold %s%%", usage, usage_threshold)
                return result

            if self.max_evictions and attempts >= self.max_evictions:
                raise EvictionLimitReached(self.max_evictions, usage, usage_threshold)

            candidate = self.enumerator.oldest_file(root, exclusions)
            if candidate is None:
                raise EvictionExhausted(usage, usage_threshold)
            if previous is not None and candidate.path == previous:
                raise LoopDetected(candidate.path)

            outcome = self.file_ops.delete_file(candidate.path)
            previous = candidate.path
            attempts += 1
            if outcome.success:
                result.removed.append(outcome)
                logger.info("evicted %s (usage %s%%)", candidate.path, usage)
            else:
                result.failed.append(outcome)
                logger.warning("failed to evict %s: %s", candidate.path, outcome.error_message)
