"""
Tests for the usage-driven eviction loop
"""

import pytest

from conftest import StubProbe, make_file
from eviction import EvictionEngine, EvictionResult
from file_enumerator import ExclusionSet, FileEnumerator
from file_operations import FileOperations, OperationResult
from kenosis_errors import (
    EvictionError,
    EvictionExhausted,
    EvictionLimitReached,
    LoopDetected,
    UnsupportedDryRunWithEviction,
)
from usage_probe import percent_used


class NoopFileOperations(FileOperations):
    """Reports success without removing anything"""

    def delete_file(self, path):
        return OperationResult(operation=self.plan_delete(path), success=True)


class FailingFileOperations(FileOperations):
    """Every deletion fails"""

    def delete_file(self, path):
        return OperationResult(operation=self.plan_delete(path), success=False, error_message="Permission denied")


def usage_from_file_count(root, base=50, per_file=10):
    """Usage that drops by per_file percent with every file removed"""
    return lambda path: base + per_file * sum(1 for p in root.rglob("*") if p.is_file())


@pytest.fixture
def four_files(tmp_path):
    make_file(tmp_path / "c.bin", mtime=300)
    make_file(tmp_path / "sub" / "a.bin", mtime=100)
    make_file(tmp_path / "d.bin", mtime=400)
    make_file(tmp_path / "sub" / "b.bin", mtime=200)
    return tmp_path


def test_evicts_oldest_first_until_threshold(four_files):
    probe = StubProbe(usage_from_file_count(four_files))
    engine = EvictionEngine(FileEnumerator(), probe, FileOperations())

    result = engine.run(four_files, ExclusionSet(), 70)

    assert [r.path.name for r in result.removed] == ["a.bin", "b.bin"]
    assert (four_files / "c.bin").exists()
    assert (four_files / "d.bin").exists()
    assert result.initial_usage == 90
    assert result.final_usage == 70


def test_nothing_removed_when_already_within_threshold(four_files):
    engine = EvictionEngine(FileEnumerator(), StubProbe(40), FileOperations())
    result = engine.run(four_files, ExclusionSet(), 50)
    assert result.removed == []
    assert len(list(four_files.rglob("*.bin"))) == 4


def test_disabled_threshold_does_not_probe(four_files):
    probe = StubProbe(99)
    result = EvictionEngine(FileEnumerator(), probe, FileOperations()).run(four_files, ExclusionSet(), 0)
    assert probe.calls == 0
    assert result.removed == []


def test_excluded_files_are_never_evicted(four_files):
    probe = StubProbe(usage_from_file_count(four_files))
    engine = EvictionEngine(FileEnumerator(), probe, FileOperations())

    result = engine.run(four_files, ExclusionSet(["a.bin", "b.bin"]), 70)

    assert [r.path.name for r in result.removed] == ["c.bin", "d.bin"]
    assert (four_files / "sub" / "a.bin").exists()


def test_exhausted_when_no_files_left(tmp_path):
    only = make_file(tmp_path / "only.bin")
    engine = EvictionEngine(FileEnumerator(), StubProbe(95), FileOperations())

    with pytest.raises(EvictionExhausted) as exc_info:
        engine.run(tmp_path, ExclusionSet(), 80)

    assert not only.exists()
    assert exc_info.value.usage == 95


def test_loop_detected_when_removal_does_not_take(tmp_path):
    only = make_file(tmp_path / "only.bin")
    engine = EvictionEngine(FileEnumerator(), StubProbe(95), NoopFileOperations())
    result = EvictionResult()

    with pytest.raises(LoopDetected) as exc_info:
        engine.run(tmp_path, ExclusionSet(), 80, result=result)

    assert exc_info.value.path == only
    assert len(result.removed) == 1


def test_failed_delete_ends_in_loop_detection(tmp_path):
    make_file(tmp_path / "locked.bin")
    engine = EvictionEngine(FileEnumerator(), StubProbe(95), FailingFileOperations())
    result = EvictionResult()

    with pytest.raises(LoopDetected):
        engine.run(tmp_path, ExclusionSet(), 80, result=result)

    assert result.removed == []
    assert [r.error_message for r in result.failed] == ["Permission denied"]


def test_eviction_limit(four_files):
    engine = EvictionEngine(FileEnumerator(), StubProbe(95), FileOperations(), max_evictions=2)
    result = EvictionResult()

    with pytest.raises(EvictionLimitReached):
        engine.run(four_files, ExclusionSet(), 80, result=result)

    assert len(result.removed) == 2


def test_dry_run_is_rejected(four_files):
    engine = EvictionEngine(FileEnumerator(), StubProbe(95), FileOperations())
    with pytest.raises(UnsupportedDryRunWithEviction):
        engine.run(four_files, ExclusionSet(), 80, dry_run=True)

    engine = EvictionEngine(FileEnumerator(), StubProbe(95), FileOperations(dry_run=True))
    with pytest.raises(EvictionError):
        engine.run(four_files, ExclusionSet(), 80)

    assert len(list(four_files.rglob("*.bin"))) == 4


def test_reclaimed_bytes(tmp_path):
    make_file(tmp_path / "a", content="x" * 100, mtime=1)
    make_file(tmp_path / "b", content="x" * 10, mtime=2)
    probe = StubProbe(usage_from_file_count(tmp_path))
    result = EvictionEngine(FileEnumerator(), probe, FileOperations()).run(tmp_path, ExclusionSet(), 60)
    assert result.reclaimed_bytes == 100


def test_single_file_target_measures_its_directory(tmp_path):
    target = make_file(tmp_path / "backup.tar")
    measured = []

    def usage(path):
        measured.append(path)
        percent_used(path)  # Must not fail once the target is gone
        return 99

    engine = EvictionEngine(FileEnumerator(), StubProbe(usage), FileOperations())
    result = EvictionResult()

    with pytest.raises(EvictionExhausted):
        engine.run(target, ExclusionSet(), 50, result=result)

    assert not target.exists()
    assert [r.path for r in result.removed] == [target]
    assert set(measured) == {tmp_path}
