"""Tests for locating and clearing index artifacts."""

from __future__ import annotations

import os
from pathlib import Path
import sys

import pytest

from core.models import FailureKind, StageStatus
from index_helpers import LockedIndexStore, UnreadableRootStore, seed_index
from storage.index_store import IndexStore


def test_locate_is_derived_from_environment_without_touching_disk(tmp_path: Path) -> None:
    store = IndexStore(environ={"PROGRAMDATA": str(tmp_path / "nowhere")})

    artifacts = store.locate()

    expected_root = tmp_path / "nowhere" / "Microsoft" / "Search" / "Data" / "Applications" / "Windows"
    assert artifacts.root_path == expected_root
    assert artifacts.primary_file == expected_root / "Windows.edb"
    assert artifacts.log_file_pattern == "MSS*.log"
    assert not (tmp_path / "nowhere").exists()


def test_locate_falls_back_to_default_base_when_env_missing() -> None:
    store = IndexStore(base_default="/srv/data", relative_root="idx", environ={})

    assert store.locate().root_path == Path("/srv/data") / "idx"


def test_clear_missing_root_is_skipped_not_failed(tmp_path: Path) -> None:
    store = IndexStore(environ={"PROGRAMDATA": str(tmp_path)})

    result = store.clear(store.locate())

    assert result.status is StageStatus.SKIPPED
    assert result.failure is None


def test_clear_renames_primary_and_deletes_logs(tmp_path: Path) -> None:
    store = IndexStore(environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store)
    artifacts = store.locate()

    result = store.clear(artifacts)

    assert result.status is StageStatus.SUCCESS
    assert not artifacts.primary_file.exists()
    assert (artifacts.root_path / "Windows.edb.old").read_bytes() == b"edb"
    assert list(artifacts.root_path.glob("MSS*.log")) == []
    assert "2 log file(s) deleted" in result.detail


def test_clear_replaces_previous_backup(tmp_path: Path) -> None:
    store = IndexStore(environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store, logs=0)
    artifacts = store.locate()
    (artifacts.root_path / "Windows.edb.old").write_bytes(b"stale")

    result = store.clear(artifacts)

    assert result.status is StageStatus.SUCCESS
    assert (artifacts.root_path / "Windows.edb.old").read_bytes() == b"edb"


def test_clear_attempts_primary_before_logs(tmp_path: Path) -> None:
    store = LockedIndexStore((), environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store)

    store.clear(store.locate())

    assert store.operations[0] == ("rename", "Windows.edb")
    assert all(op == "delete" for op, _ in store.operations[1:])


def test_clear_with_absent_primary_still_clears_logs(tmp_path: Path) -> None:
    store = IndexStore(environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store)
    artifacts = store.locate()
    artifacts.primary_file.unlink()

    result = store.clear(artifacts)

    assert result.status is StageStatus.SUCCESS
    assert "already absent" in result.detail


def test_clear_partial_when_some_logs_locked(tmp_path: Path) -> None:
    store = LockedIndexStore({"MSS00001.log"}, environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store, logs=3)
    artifacts = store.locate()

    result = store.clear(artifacts)

    assert result.status is StageStatus.PARTIAL_SUCCESS
    assert "MSS00001.log" in result.detail
    assert not (artifacts.root_path / "MSS00000.log").exists()
    assert not (artifacts.root_path / "MSS00002.log").exists()


def test_clear_fails_with_permission_denied_when_primary_locked(tmp_path: Path) -> None:
    store = LockedIndexStore({"Windows.edb"}, environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store)
    artifacts = store.locate()

    result = store.clear(artifacts)

    assert result.status is StageStatus.FAILED
    assert result.failure is FailureKind.PERMISSION_DENIED
    assert ("rename", "Windows.edb") in store.operations
    assert ("delete", "Windows.edb") in store.operations
    assert artifacts.primary_file.exists()
    assert list(artifacts.root_path.glob("MSS*.log")) == []


def test_inventory_counts_artifacts(tmp_path: Path) -> None:
    store = IndexStore(environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store, logs=4)

    inventory = store.inventory(store.locate())

    assert inventory.root_exists is True
    assert inventory.primary_exists is True
    assert inventory.primary_size == 3
    assert inventory.log_count == 4


def test_clear_reports_unreadable_root_as_permission_denied(tmp_path: Path) -> None:
    store = UnreadableRootStore(environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store)
    artifacts = store.locate()

    result = store.clear(artifacts)

    assert result.status is StageStatus.FAILED
    assert result.failure is FailureKind.PERMISSION_DENIED
    assert "unreadable" in result.detail
    assert artifacts.primary_file.exists()
    assert len(list(artifacts.root_path.glob("MSS*.log"))) == 2


@pytest.mark.skipif(
    sys.platform == "win32" or os.geteuid() == 0,
    reason="needs POSIX permissions enforced for the current user",
)
def test_clear_on_root_without_permissions_fails_instead_of_reporting_absent(
    tmp_path: Path,
) -> None:
    store = IndexStore(environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store)
    artifacts = store.locate()
    artifacts.root_path.chmod(0)
    try:
        result = store.clear(artifacts)
    finally:
        artifacts.root_path.chmod(0o755)

    assert result.status is StageStatus.FAILED
    assert result.failure is FailureKind.PERMISSION_DENIED
    assert artifacts.primary_file.exists()


def test_inventory_raises_on_unreadable_root(tmp_path: Path) -> None:
    store = UnreadableRootStore(environ={"PROGRAMDATA": str(tmp_path)})
    seed_index(store)

    with pytest.raises(PermissionError):
        store.inventory(store.locate())
