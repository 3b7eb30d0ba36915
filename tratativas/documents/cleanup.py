from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from tratativas.logging.logger import Log
from tratativas.storage.base import BaseObjectStore
from tratativas.storage.exceptions import StorageError


@dataclass(frozen=True)
class SweepReport:
    """Counts of what one periodic sweep removed."""

    local_deleted: int = 0
    remote_deleted: int = 0
    errors: int = 0


class CleanupSweeper:
    """Removes temporary documents, per run and on a schedule.

    Both duties are best-effort: failures are logged and never raised.
    """

    def __init__(
        self,
        temp_dir: Path,
        store: BaseObjectStore,
        remote_prefix: str,
        min_age_seconds: int,
        log: Log,
    ) -> None:
        self._temp_dir = temp_dir
        self._store = store
        self._remote_prefix = remote_prefix
        self._min_age = timedelta(seconds=min_age_seconds)
        self._log = log

    def cleanup_run(self, paths: Iterable[Path]) -> list[Path]:
        """Delete the files one pipeline run created. Returns those removed."""
        removed: list[Path] = []
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                self._log.warning(f"Could not delete staged file {path}: {exc}")
                continue
            removed.append(path)
        if removed:
            self._log.info(f"Removed {len(removed)} staged files")
        return removed

    def sweep(self, now: datetime | None = None) -> SweepReport:
        """Delete local and remote temp files older than the retention window."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - self._min_age
        local_deleted, local_errors = self._sweep_local(cutoff)
        remote_deleted, remote_errors = self._sweep_remote(cutoff)
        report = SweepReport(
            local_deleted=local_deleted,
            remote_deleted=remote_deleted,
            errors=local_errors + remote_errors,
        )
        self._log.info(
            f"Cleanup sweep removed {local_deleted} local and "
            f"{remote_deleted} remote temp files ({report.errors} errors)"
        )
        return report

    def _sweep_local(self, cutoff: datetime) -> tuple[int, int]:
        if not self._temp_dir.is_dir():
            return 0, 0
        deleted = errors = 0
        for path in self._temp_dir.iterdir():
            try:
                if not path.is_file():
                    continue
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                if modified > cutoff:
                    continue
                path.unlink(missing_ok=True)
                deleted += 1
            except OSError as exc:
                errors += 1
                self._log.warning(f"Could not delete temp file {path}: {exc}")
        return deleted, errors

    def _sweep_remote(self, cutoff: datetime) -> tuple[int, int]:
        try:
            objects = self._store.list_objects(self._remote_prefix)
            stale = [
                obj.path
                for obj in objects
                if obj.created_at is not None and _aware(obj.created_at) <= cutoff
            ]
            self._store.delete(stale)
        except StorageError as exc:
            self._log.warning(
                f"Could not clean remote prefix '{self._remote_prefix}': {exc}"
            )
            return 0, 1
        return len(stale), 0


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
