"""Location and clearing of the search service's persisted index artifacts."""

from __future__ import annotations

from dataclasses import dataclass
import fnmatch
import os
from pathlib import Path
import stat
from typing import Any, Mapping

from core.errors import classify_os_error
from core.logging import logger as LOGGER
from core.models import IndexArtifactSet, OperationResult


BACKUP_SUFFIX = ".old"


@dataclass(frozen=True)
class IndexInventory:
    """Read-only summary of what is currently on disk."""

    root_exists: bool
    primary_exists: bool
    primary_size: int
    log_count: int


class IndexStore:
    """Filesystem-backed store for the primary index database and its logs."""

    def __init__(
        self,
        *,
        base_env: str = "PROGRAMDATA",
        base_default: str = "C:\\ProgramData",
        relative_root: str = "Microsoft/Search/Data/Applications/Windows",
        primary_file: str = "Windows.edb",
        log_pattern: str = "MSS*.log",
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._base_env = base_env
        self._base_default = base_default
        self._relative_parts = [part for part in relative_root.replace("\\", "/").split("/") if part]
        self._primary_file = primary_file
        self._log_pattern = log_pattern
        self._environ = environ if environ is not None else os.environ

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], environ: Mapping[str, str] | None = None
    ) -> "IndexStore":
        index_cfg = config.get("index") or {}
        return cls(
            base_env=str(index_cfg.get("base_env", "PROGRAMDATA")),
            base_default=str(index_cfg.get("base_default", "C:\\ProgramData")),
            relative_root=str(
                index_cfg.get("relative_root", "Microsoft/Search/Data/Applications/Windows")
            ),
            primary_file=str(index_cfg.get("primary_file", "Windows.edb")),
            log_pattern=str(index_cfg.get("log_pattern", "MSS*.log")),
            environ=environ,
        )

    def locate(self) -> IndexArtifactSet:
        """Compute artifact locations from the environment; never touches disk."""

        base = self._environ.get(self._base_env) or self._base_default
        root = Path(base).joinpath(*self._relative_parts)
        return IndexArtifactSet(
            root_path=root,
            primary_file=root / self._primary_file,
            log_file_pattern=self._log_pattern,
        )

    def inventory(self, artifacts: IndexArtifactSet) -> IndexInventory:
        """Summarize the artifacts on disk; raises ``OSError`` if the root is unreadable."""

        root = artifacts.root_path
        if not self._is_dir(root):
            return IndexInventory(False, False, 0, 0)
        primary_size = self._file_size(artifacts.primary_file)
        return IndexInventory(
            root_exists=True,
            primary_exists=primary_size is not None,
            primary_size=primary_size or 0,
            log_count=len(self._list_logs(root, artifacts.log_file_pattern)),
        )

    def clear(self, artifacts: IndexArtifactSet) -> OperationResult:
        """Clear the primary database, then the rotating log files.

        The primary file is renamed to ``<name>.old`` when possible and deleted
        otherwise. Log files are removed best-effort. A root that cannot be
        inspected fails with the classified error so the caller can escalate.
        """

        root = artifacts.root_path
        try:
            if not self._is_dir(root):
                return OperationResult.skipped(f"Index root {root} does not exist")
            primary_present = self._file_size(artifacts.primary_file) is not None
            log_paths = self._list_logs(root, artifacts.log_file_pattern)
        except OSError as exc:
            return OperationResult.failed(
                classify_os_error(exc), f"Index root {root} unreadable: {exc}"
            )

        primary_error: OSError | None = None
        primary_detail = self._clear_primary(artifacts.primary_file, primary_present)
        if isinstance(primary_detail, OSError):
            primary_error = primary_detail

        cleared_logs = 0
        failed_logs: list[str] = []
        for log_path in log_paths:
            try:
                self._delete(log_path)
                cleared_logs += 1
            except OSError as exc:
                LOGGER.debug("[Index] Could not delete %s: %s", log_path, exc)
                failed_logs.append(log_path.name)

        logs_detail = f"{cleared_logs} log file(s) deleted"
        if failed_logs:
            logs_detail += f", {len(failed_logs)} left: {', '.join(failed_logs)}"

        if primary_error is not None:
            return OperationResult.failed(
                classify_os_error(primary_error),
                f"Could not clear {artifacts.primary_file.name}: {primary_error}; {logs_detail}",
            )
        if failed_logs:
            return OperationResult.partial(f"{primary_detail}; {logs_detail}")
        return OperationResult.ok(f"{primary_detail}; {logs_detail}")

    def _clear_primary(self, primary: Path, present: bool) -> str | OSError:
        if not present:
            return f"{primary.name} already absent"

        backup = primary.with_name(primary.name + BACKUP_SUFFIX)
        try:
            self._rename(primary, backup)
            return f"{primary.name} renamed to {backup.name}"
        except OSError as rename_error:
            LOGGER.info("[Index] Rename of %s failed (%s); deleting instead", primary, rename_error)

        try:
            self._delete(primary)
        except OSError as exc:
            return exc
        return f"{primary.name} deleted"

    # Only a missing path reads as absent; any other OSError propagates.

    def _is_dir(self, path: Path) -> bool:
        try:
            return stat.S_ISDIR(os.stat(path).st_mode)
        except (FileNotFoundError, NotADirectoryError):
            return False

    def _file_size(self, path: Path) -> int | None:
        try:
            info = os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        return info.st_size if stat.S_ISREG(info.st_mode) else None

    def _list_logs(self, root: Path, pattern: str) -> list[Path]:
        with os.scandir(root) as entries:
            return sorted(
                Path(entry.path)
                for entry in entries
                if fnmatch.fnmatch(entry.name, pattern) and entry.is_file()
            )

    def _rename(self, source: Path, target: Path) -> None:
        source.replace(target)

    def _delete(self, path: Path) -> None:
        path.unlink()
