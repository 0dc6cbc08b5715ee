#!/usr/bin/env python3
"""
Kenosis — Ancient Greek κένωσις (emptying)

An unattended disk-space reclamation tool for backup and cache directories.
Deletes files older than a given age, evicts the oldest files until disk
usage drops below a threshold, and optionally prunes empty directories.

Usage:
    kenosis <path> --age 2w                 # Delete files older than two weeks
    kenosis <path> --usage 80               # Evict oldest files until usage <= 80%
    kenosis <path> -a 1M -u 90 -f           # Both, then remove empty directories
    kenosis <path> -a 3d --dry-run          # List what would be deleted
    kenosis <path> -u 85 -l syslog -q       # From cron: log to syslog only
"""

import argparse
import logging
import signal
import sys
from dataclasses import dataclass, field
from typing import Optional

from auxiliary import format_bytes, format_path_for_display
from audit_log import close_audit_log, setup_audit_log
from console_ui import ConsoleUI
from duration import format_minutes
from eviction import EvictionEngine, EvictionResult
from file_enumerator import EntryType, ExclusionSet, FileEnumerator
from file_operations import FileOperations, OperationResult
from instance_guard import SingleInstanceGuard, marker_path_for
from kenosis_config import CleanupConfig, ConfigLoader
from kenosis_errors import (
    AlreadyRunning,
    ConfigurationError,
    EvictionError,
    UnsupportedDryRunWithEviction,
)
from usage_probe import UsageProbe

__version__ = "1.0.0"

logger = logging.getLogger("kenosis.audit")

# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class PhaseReport:
    name: str
    entry_type: EntryType
    removed: list[OperationResult] = field(default_factory=list)
    failed: list[OperationResult] = field(default_factory=list)

    @property
    def reclaimed_bytes(self) -> int:
        return sum(r.operation.size for r in self.removed if not r.dry_run)


@dataclass
class CleanupReport:
    """Per-phase outcome of one invocation"""

    dry_run: bool = False
    phases: list[PhaseReport] = field(default_factory=list)
    initial_usage: Optional[int] = None
    final_usage: Optional[int] = None

    @property
    def removed_count(self) -> int:
        return sum(len(p.removed) for p in self.phases)

    @property
    def failed_count(self) -> int:
        return sum(len(p.failed) for p in self.phases)

    @property
    def reclaimed_bytes(self) -> int:
        return sum(p.reclaimed_bytes for p in self.phases)

    def phase(self, name: str) -> Optional[PhaseReport]:
        for p in self.phases:
            if p.name == name:
                return p
        return None


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class CleanupOrchestrator:
    """Runs age deletion, usage eviction and empty-directory pruning, in that order"""

    AGE = "age"
    EVICTION = "eviction"
    EMPTY_DIRS = "empty directories"

    def __init__(
        self,
        config: CleanupConfig,
        enumerator: Optional[FileEnumerator] = None,
        probe: Optional[UsageProbe] = None,
        file_ops: Optional[FileOperations] = None,
    ):
        self.config = config
        self.enumerator = enumerator or FileEnumerator()
        self.probe = probe or UsageProbe()
        self.file_ops = file_ops or FileOperations(dry_run=config.dry_run)
        self.exclusions: ExclusionSet = config.exclusion_set()

    def check(self):
        """Reject combinations that cannot run, before anything is touched"""
        if self.config.dry_run and self.config.usage_percent > 0:
            raise UnsupportedDryRunWithEviction()

    def run(self) -> CleanupReport:
        """Run every enabled phase and return the report

        Raises:
            EvictionError: eviction could not reach the threshold; deletions
                from the age phase stay applied
        """
        self.check()
        config = self.config
        report = CleanupReport(dry_run=config.dry_run)

        logger.info(
            "==== kenosis %s start: %s (age %s, usage %s, empty dirs %s, %s) ====",
            __version__,
            config.target,
            format_minutes(config.age_minutes) if config.age_minutes else "off",
            f"{config.usage_percent}%" if config.usage_percent else "off",
            "on" if config.force_remove_empty else "off",
            "dry run" if config.dry_run else "live",
        )
        status = "failed"
        try:
            if config.age_minutes > 0:
                report.phases.append(self.delete_aged_files())
            if config.usage_percent > 0:
                self.evict(report)
            if config.force_remove_empty:
                report.phases.append(self.prune_empty_directories())
            status = "done"
        finally:
            logger.info(
                "==== kenosis end (%s): %d removed, %d failed, %s reclaimed ====",
                status,
                report.removed_count,
                report.failed_count,
                format_bytes(report.reclaimed_bytes),
            )
        return report

    def _record(self, phase: PhaseReport, result: OperationResult, verb: str, past: str):
        if not result.success:
            phase.failed.append(result)
            logger.warning("failed to %s %s: %s", verb, result.path, result.error_message)
            return
        phase.removed.append(result)
        if result.dry_run:
            logger.info("would %s %s", verb, result.path)
        else:
            logger.info("%s %s", past, result.path)

    def delete_aged_files(self) -> PhaseReport:
        """Phase 1: delete regular files whose status-change time is older than the age"""
        phase = PhaseReport(self.AGE, EntryType.REGULAR_FILE)
        paths = self.enumerator.list_files_older_than(self.config.target, self.exclusions, self.config.age_minutes)
        operations = [self.file_ops.plan_delete(p) for p in paths]
        successful, failed = self.file_ops.execute_batch_operations(operations)
        for result in successful + failed:
            self._record(phase, result, "delete", "deleted")
        return phase

    def evict(self, report: CleanupReport) -> PhaseReport:
        """Phase 2: evict oldest files until usage is within the threshold

        The phase is added to the report up front so removals made before an
        EvictionError are still accounted for.
        """
        phase = PhaseReport(self.EVICTION, EntryType.REGULAR_FILE)
        report.phases.append(phase)
        engine = EvictionEngine(self.enumerator, self.probe, self.file_ops, self.config.max_evictions)
        result = EvictionResult()
        try:
            engine.run(self.config.target, self.exclusions, self.config.usage_percent, self.config.dry_run, result)
        finally:
            phase.removed.extend(result.removed)
            phase.failed.extend(result.failed)
            report.initial_usage = result.initial_usage
            report.final_usage = result.final_usage
        return phase

    def prune_empty_directories(self) -> PhaseReport:
        """Phase 3: remove directories that are empty when enumerated"""
        phase = PhaseReport(self.EMPTY_DIRS, EntryType.EMPTY_DIRECTORY)
        for directory in self.enumerator.list_empty_directories(self.config.target, self.exclusions):
            self._record(phase, self.file_ops.remove_directory(directory), "remove", "removed")
        return phase


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kenosis",
        description="Kenosis — reclaim disk space by age and usage threshold",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Duration units: m (minutes), h (hours), d (days), w (weeks), M (months = 30d), y (years = 365d)\n"
            "Units combine, e.g. 1M2w or 1d12h."
        ),
    )
    parser.add_argument("path", nargs="?", help="Target directory or file")
    parser.add_argument("-a", "--age", type=str, default=None, help="Delete files older than this (e.g. 2w, 1M)")
    parser.add_argument("-u", "--usage", type=int, default=None, help="Evict oldest files until usage is <= PCT")
    parser.add_argument("-f", "--force", action="store_true", help="Remove empty directories afterwards")
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Glob of paths to leave alone (repeatable)",
    )
    parser.add_argument("-l", "--log", type=str, default=None, help="Append audit log to FILE, or 'syslog'")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Only list what would be deleted")
    parser.add_argument("-q", "--quiet", action="store_true", help="No console output besides errors")
    parser.add_argument("-c", "--config", type=str, default=None, help="TOML file with default settings")
    parser.add_argument("--max-evictions", type=int, default=None, help="Abort eviction after N removals")
    parser.add_argument("--state-dir", type=str, default=None, help="Directory for the instance marker")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _signal_handler(signum, frame):
    # Unwind through the instance guard instead of dying mid-delete
    raise KeyboardInterrupt


def show_report(ui: ConsoleUI, config: CleanupConfig, report: CleanupReport):
    """Print the end-of-run summary"""
    if not report.phases:
        return
    rows = []
    for phase in report.phases:
        rows.append([phase.name, str(len(phase.removed)), str(len(phase.failed)), format_bytes(phase.reclaimed_bytes)])
    title = "Dry Run Summary" if report.dry_run else "Cleanup Summary"
    ui.show_summary_table(title, ["Phase", "Removed", "Failed", "Reclaimed"], rows)

    if report.initial_usage is not None:
        ui.print_info(f"Usage: {report.initial_usage}% → {report.final_usage}% (threshold {config.usage_percent}%)")
    failures = [(format_path_for_display(str(r.path)), r.error_message or "") for p in report.phases for r in p.failed]
    ui.show_failures(failures)
    if report.dry_run:
        ui.print_info(f"Would remove {report.removed_count} entries")
    elif report.removed_count:
        ui.print_success(f"Removed {report.removed_count} entries, reclaimed {format_bytes(report.reclaimed_bytes)}")
    else:
        ui.print_success("Nothing to do")


def run(config: CleanupConfig, ui: ConsoleUI, orchestrator: Optional[CleanupOrchestrator] = None) -> int:
    """Run one invocation under the instance guard; returns the exit code"""
    orchestrator = orchestrator or CleanupOrchestrator(config)
    try:
        orchestrator.check()
        setup_audit_log(config.log_destination, ui.console, config.quiet)
    except (ConfigurationError, EvictionError) as e:
        ui.print_error(str(e))
        return e.exit_code

    try:
        ui.print_header("Kenosis", f"Cleaning {format_path_for_display(str(config.target))}")
        ui.show_configuration(config.to_display_dict())

        guard = SingleInstanceGuard(marker_path_for(config.target, config.state_dir))
        try:
            guard.acquire()
        except AlreadyRunning as e:
            logger.info("skipping run: %s", e)
            ui.print_warning(str(e))
            return e.exit_code
        except OSError as e:
            ui.print_error(f"Cannot create instance marker {guard.marker_path}: {e}")
            return ConfigurationError.exit_code

        try:
            report = orchestrator.run()
        except EvictionError as e:
            logger.error("%s", e)
            ui.print_error(str(e))
            return e.exit_code
        finally:
            guard.release()

        show_report(ui, config, report)
        return 0
    finally:
        close_audit_log()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ConfigLoader(args.config).build(args)
    except ConfigurationError as e:
        ConsoleUI().print_error(str(e))
        return e.exit_code

    ui = ConsoleUI(quiet=config.quiet)

    previous_handlers = {signal.SIGINT: signal.signal(signal.SIGINT, _signal_handler)}
    if hasattr(signal, "SIGTERM"):
        previous_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, _signal_handler)

    try:
        return run(config, ui)
    except KeyboardInterrupt:
        ui.print_warning("\nInterrupted.")
        return 130
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)


if __name__ == "__main__":
    sys.exit(main())
