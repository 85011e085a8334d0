"""Durable, ordered registry of file metadata persisted as one JSON snapshot."""

import json
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from common.exceptions import CatalogError
from common.logging_config import get_logger
from common.types import FileMetadata

logger = get_logger(__name__)


class Catalog:
    """
    Identifier → FileMetadata mapping, kept in insertion order.

    Every mutation rewrites the whole snapshot file atomically before the
    in-memory state changes, so a crash leaves either the old or the new
    catalog on disk and never a partial one.
    """

    def __init__(self, path: Path):
        """
        Args:
            path: Location of the JSON snapshot (typically data/files_db.json)
        """
        self.path = Path(path)
        self._lock = threading.RLock()
        self._entries: List[FileMetadata] = self._load()

    def _load(self) -> List[FileMetadata]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                records = json.load(f)
            if not isinstance(records, list):
                raise ValueError("catalog root is not a list")
            entries = [FileMetadata.from_record(record) for record in records]
        except (json.JSONDecodeError, ValueError, KeyError, TypeError) as e:
            backup_path = self.path.with_suffix(self.path.suffix + '.bak')
            shutil.copy(self.path, backup_path)
            logger.error(
                f"Catalog {self.path} is unreadable ({e}); backed up to {backup_path}, starting empty"
            )
            return []

        logger.info(f"Loaded catalog with {len(entries)} entries from {self.path}")
        return entries

    def _write_snapshot(self, entries: List[FileMetadata]) -> None:
        """
        Write entries to a temp file next to the catalog and swap it in.

        Raises:
            CatalogError: If the snapshot cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name, suffix='.tmp'
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump([entry.to_record() for entry in entries], f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_name, self.path)
            except BaseException:
                if os.path.exists(temp_name):
                    os.unlink(temp_name)
                raise
        except OSError as e:
            raise CatalogError(f"Failed to write catalog snapshot: {e}") from e

    def append(self, entry: FileMetadata) -> Tuple[FileMetadata, bool]:
        """
        Record a new entry.

        Args:
            entry: Metadata of a blob that already exists in the blob store

        Returns:
            (entry, True) when recorded, or (existing entry, False) when the
            identifier is already catalogued

        Raises:
            CatalogError: If the snapshot cannot be written
        """
        with self._lock:
            existing = self.get(entry.identifier)
            if existing is not None:
                logger.info(f"Catalog already holds {entry.identifier}, skipping append")
                return existing, False

            updated = self._entries + [entry]
            self._write_snapshot(updated)
            self._entries = updated

        logger.info(f"Catalog entry added [hash={entry.identifier}, name={entry.name}]")
        return entry, True

    def remove(self, identifier: str) -> Optional[FileMetadata]:
        """
        Remove the entry for identifier.

        Returns:
            The removed entry, or None if there was none
        """
        with self._lock:
            existing = self.get(identifier)
            if existing is None:
                return None

            updated = [e for e in self._entries if e.identifier != identifier]
            self._write_snapshot(updated)
            self._entries = updated

        logger.info(f"Catalog entry removed [hash={identifier}]")
        return existing

    def list(self) -> List[FileMetadata]:
        with self._lock:
            return list(self._entries)

    def search(self, query: str) -> List[FileMetadata]:
        """
        Find entries whose name contains query (case-insensitive) or whose
        identifier contains query (case-sensitive).

        An empty query returns every entry.
        """
        entries = self.list()
        if not query:
            return entries

        lowered = query.lower()
        return [
            entry for entry in entries
            if lowered in entry.name.lower() or query in entry.identifier
        ]

    def get(self, identifier: str) -> Optional[FileMetadata]:
        with self._lock:
            for entry in self._entries:
                if entry.identifier == identifier:
                    return entry
        return None

    def resolve(self, reference: str) -> Optional[FileMetadata]:
        """
        Look up an entry by identifier, then storage path, then filename.

        When several entries share a filename the most recent upload wins.
        """
        with self._lock:
            entries = list(self._entries)

        for entry in entries:
            if entry.identifier == reference:
                return entry
        for entry in entries:
            if entry.path == reference:
                return entry
        for entry in reversed(entries):
            if entry.name == reference:
                return entry
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: str) -> bool:
        return self.get(identifier) is not None
