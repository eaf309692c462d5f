"""
JSON document backend for the warning record store.

The whole warnings map lives in one pretty-printed JSON file. Writes go to a
temporary sibling first and are moved into place with ``os.replace`` so a
crash mid-write leaves the previous document intact. File I/O runs on a
worker thread through ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import os
import shutil
from pathlib import Path
from typing import Any, Dict

from modwarden.errors import PersistenceFailure
from modwarden.storage.backups import BackupRotator
from modwarden.util.logger import get_logger

logger = get_logger("json_backend")


class JsonFileBackend:
    """Persist the warnings document to ``path`` with rotating backups in ``rotator.backup_dir``."""

    def __init__(self, path: Path, rotator: BackupRotator) -> None:
        self.path = path
        self.rotator = rotator
        self.quarantine_path = path.with_name(f"{path.stem}.quarantine{path.suffix}")

    def describe(self) -> str:
        return f"json:{self.path}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        await asyncio.to_thread(self.path.parent.mkdir, parents=True, exist_ok=True)

    async def close(self) -> None:
        """Nothing is held open between writes."""

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    async def read(self) -> Dict[str, Any] | None:
        """Return the stored document, or None when no document exists yet.

        A file that is not valid UTF-8 JSON is moved aside to
        ``<name>.corrupt-<timestamp>.json`` and treated as absent so the bot
        can start; the original bytes are never overwritten.
        """
        return await asyncio.to_thread(self._read_sync)

    def _read_sync(self) -> Dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise PersistenceFailure(f"could not read {self.path}: {exc}") from exc

        try:
            text = raw.decode("utf-8")
            document = json.loads(text) if text.strip() else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            stamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
            corrupt_path = self.path.with_name(f"{self.path.stem}.corrupt-{stamp}{self.path.suffix}")
            try:
                os.replace(self.path, corrupt_path)
            except OSError as move_exc:
                raise PersistenceFailure(f"{self.path} is not valid JSON and could not be moved aside: {move_exc}") from exc
            logger.error("[JSON BACKEND] %s is not valid JSON (%s); moved to %s", self.path, exc, corrupt_path.name)
            return None

        if not isinstance(document, dict):
            raise PersistenceFailure(f"{self.path} holds a {type(document).__name__}, expected an object")
        return document

    async def write(self, document: Dict[str, Any]) -> None:
        """Atomically replace the stored document."""
        try:
            payload = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"could not serialise warnings document: {exc}") from exc
        await asyncio.to_thread(self._write_sync, self.path, payload)

    @staticmethod
    def _write_sync(path: Path, payload: str) -> None:
        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            raise PersistenceFailure(f"could not write {path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Backups and quarantine
    # ------------------------------------------------------------------

    async def backup(self) -> Path | None:
        """Snapshot the current document before it is overwritten; None if there is nothing yet."""
        return await asyncio.to_thread(self._backup_sync)

    def _backup_sync(self) -> Path | None:
        if not self.path.exists():
            return None
        try:
            target = self.rotator.next_path()
            shutil.copy2(self.path, target)
        except OSError as exc:
            raise PersistenceFailure(f"could not back up {self.path}: {exc}") from exc
        logger.debug("[JSON BACKEND] Created backup %s", target.name)
        self.rotator.prune()
        return target

    async def write_quarantine(self, records: Dict[str, Any]) -> None:
        """Merge invalid records into the quarantine file next to the document."""
        await asyncio.to_thread(self._write_quarantine_sync, records)

    def _write_quarantine_sync(self, records: Dict[str, Any]) -> None:
        existing: Dict[str, Any] = {}
        if self.quarantine_path.exists():
            try:
                loaded = json.loads(self.quarantine_path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    existing = loaded
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("[JSON BACKEND] Existing quarantine file unreadable, starting a new one: %s", exc)
        existing.update(records)
        try:
            payload = json.dumps(existing, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"could not serialise quarantined records: {exc}") from exc
        self._write_sync(self.quarantine_path, payload)
