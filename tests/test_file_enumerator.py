"""
Tests for exclusion-aware enumeration
"""

import os
import time

from conftest import make_file
from file_enumerator import CandidateFile, ExclusionSet, FileEnumerator


def test_exclusion_set_keeps_order_and_duplicates():
    exclusions = ExclusionSet()
    exclusions.add("*.log")
    exclusions.add("/srv/keep/*")
    exclusions.add("*.log")
    assert exclusions.as_filter_args() == ["*.log", "/srv/keep/*", "*.log"]
    assert len(exclusions) == 3


def test_exclusion_set_ignores_empty_patterns():
    exclusions = ExclusionSet(["", "   ", "*.tmp"])
    exclusions.add("")
    assert exclusions.as_filter_args() == ["*.tmp"]


def test_exclusion_matches_full_path_and_name(tmp_path):
    exclusions = ExclusionSet(["*.log", str(tmp_path / "keep") + "/"])
    assert exclusions.matches(tmp_path / "a" / "b.log")
    assert exclusions.matches(tmp_path / "keep")
    assert not exclusions.matches(tmp_path / "a" / "b.txt")


def test_list_files_is_recursive_and_regular_only(tmp_path):
    a = make_file(tmp_path / "a.txt")
    b = make_file(tmp_path / "sub" / "deep" / "b.txt")
    os.symlink(a, tmp_path / "link.txt")
    (tmp_path / "emptydir").mkdir()

    files = FileEnumerator().list_files(tmp_path, ExclusionSet())
    assert sorted(files) == sorted([a, b])


def test_excluded_paths_never_listed(tmp_path):
    kept = make_file(tmp_path / "data" / "keep.bin")
    make_file(tmp_path / "data" / "app.log")
    make_file(tmp_path / "cache" / "x.bin")
    make_file(tmp_path / "cache" / "nested" / "y.bin")
    (tmp_path / "cache" / "empty").mkdir()

    exclusions = ExclusionSet(["*.log", str(tmp_path / "cache")])
    enumerator = FileEnumerator(clock=lambda: time.time() + 3600)

    assert enumerator.list_files(tmp_path, exclusions) == [kept]
    assert enumerator.list_files_older_than(tmp_path, exclusions, 1) == [kept]
    assert enumerator.oldest_file(tmp_path, exclusions).path == kept
    assert enumerator.list_empty_directories(tmp_path, exclusions) == []


def test_list_files_older_than_uses_clock(tmp_path):
    f = make_file(tmp_path / "f.txt")
    now = time.time()

    assert FileEnumerator(clock=lambda: now).list_files_older_than(tmp_path, ExclusionSet(), 10) == []
    assert FileEnumerator(clock=lambda: now + 11 * 60).list_files_older_than(tmp_path, ExclusionSet(), 10) == [f]


def test_list_files_older_than_huge_age(tmp_path):
    make_file(tmp_path / "f.txt")
    huge = int("9" * 320)
    assert FileEnumerator().list_files_older_than(tmp_path, ExclusionSet(), huge) == []


def test_oldest_file_by_mtime(tmp_path):
    make_file(tmp_path / "new.txt", mtime=3000)
    old = make_file(tmp_path / "sub" / "old.txt", mtime=1000)
    make_file(tmp_path / "mid.txt", mtime=2000)

    oldest = FileEnumerator().oldest_file(tmp_path, ExclusionSet())
    assert oldest == CandidateFile(1000, old)


def test_oldest_file_none_when_empty(tmp_path):
    (tmp_path / "only_dirs").mkdir()
    assert FileEnumerator().oldest_file(tmp_path, ExclusionSet()) is None


def test_root_may_be_a_single_file(tmp_path):
    f = make_file(tmp_path / "backup.tar")
    enumerator = FileEnumerator()
    assert enumerator.list_files(f, ExclusionSet()) == [f]
    assert enumerator.list_files(f, ExclusionSet(["*.tar"])) == []
    assert enumerator.list_empty_directories(f, ExclusionSet()) == []


def test_list_empty_directories_deepest_first(tmp_path):
    (tmp_path / "a" / "b" / "c").mkdir(parents=True)
    (tmp_path / "d").mkdir()
    make_file(tmp_path / "e" / "file.txt")

    empty = FileEnumerator().list_empty_directories(tmp_path, ExclusionSet())
    # Only leaves are empty at enumeration time; the root is never listed
    assert set(empty) == {tmp_path / "a" / "b" / "c", tmp_path / "d"}
    assert empty[0] == tmp_path / "a" / "b" / "c"


def test_empty_root_is_not_listed(tmp_path):
    assert FileEnumerator().list_empty_directories(tmp_path, ExclusionSet()) == []
