"""Timestamp-named backup snapshots with bounded retention."""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import List

from modwarden.util.logger import get_logger

logger = get_logger("backups")


class BackupRotator:
    """
    Names and prunes snapshots like ``warnings-2025-01-01T12-00-00.000000Z.json``.

    Names sort lexicographically in creation order, so pruning keeps the
    newest ``max_backups`` files and deletes the rest, oldest first. All
    methods are synchronous and meant to run inside ``asyncio.to_thread``
    or next to an already-awaited write.
    """

    def __init__(self, backup_dir: Path, *, prefix: str = "warnings", suffix: str = ".json", max_backups: int = 5) -> None:
        self.backup_dir = backup_dir
        self.prefix = prefix
        self.suffix = suffix
        self.max_backups = max_backups

    def next_path(self, now: datetime.datetime | None = None) -> Path:
        """Return a fresh snapshot path for ``now`` (defaults to the current UTC time)."""
        now = now or datetime.datetime.now(datetime.timezone.utc)
        stamp = now.astimezone(datetime.timezone.utc).strftime("%Y-%m-%dT%H-%M-%S.%fZ")
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        candidate = self.backup_dir / f"{self.prefix}-{stamp}{self.suffix}"
        counter = 1
        while candidate.exists():
            candidate = self.backup_dir / f"{self.prefix}-{stamp}-{counter}{self.suffix}"
            counter += 1
        return candidate

    def list_backups(self) -> List[Path]:
        """Existing snapshots, oldest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(
            path for path in self.backup_dir.iterdir()
            if path.is_file() and path.name.startswith(f"{self.prefix}-") and path.name.endswith(self.suffix)
        )

    def prune(self) -> List[Path]:
        """Delete the oldest snapshots beyond ``max_backups``; returns the deleted paths."""
        try:
            backups = self.list_backups()
        except OSError as exc:
            logger.warning("[BACKUPS] Could not list backups in %s: %s", self.backup_dir, exc)
            return []
        excess = len(backups) - self.max_backups
        if excess <= 0:
            return []

        deleted: List[Path] = []
        for path in backups[:excess]:
            try:
                path.unlink()
                deleted.append(path)
                logger.debug("[BACKUPS] Deleted old backup %s", path.name)
            except OSError as exc:
                logger.warning("[BACKUPS] Could not delete old backup %s: %s", path.name, exc)
        return deleted
