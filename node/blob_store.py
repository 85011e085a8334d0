"""Persists raw blob bytes on disk, keyed by storage key."""

import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from common.exceptions import BlobNotFoundError
from common.logging_config import get_logger

logger = get_logger(__name__)

STAGING_DIR_NAME = ".staging"

_FORBIDDEN_KEY_CHARS = re.compile(r'[/\\\x00]')


class StagedBlob:
    """
    A blob being received. Bytes land in a temp file until commit().
    """

    def __init__(self, store: 'BlobStore', temp_path: Path):
        self._store = store
        self._temp_path = temp_path
        self._file = open(temp_path, 'wb')
        self.size = 0
        self.committed_key: Optional[str] = None

    def write(self, data: bytes) -> None:
        self._file.write(data)
        self.size += len(data)

    def commit(self, key: str) -> str:
        """
        Move the staged bytes into place under key.

        Returns:
            The storage key
        """
        path = self._store.get_blob_path(key)
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()
        os.replace(self._temp_path, path)
        self.committed_key = key
        logger.debug(f"Committed staged blob [key={key}, size={self.size}]")
        return key

    def discard(self) -> None:
        if not self._file.closed:
            self._file.close()
        if self.committed_key is None and self._temp_path.exists():
            self._temp_path.unlink()
            logger.debug(f"Discarded staged blob {self._temp_path.name}")


class BlobStore:
    """Directory of blob files, one per storage key."""

    def __init__(self, root: Path):
        """
        Args:
            root: Directory holding the blobs (created on demand)
        """
        self.root = Path(root)
        self.staging_dir = self.root / STAGING_DIR_NAME

    def ensure_directories(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.staging_dir.mkdir(parents=True, exist_ok=True)

    def get_blob_path(self, key: str) -> Path:
        """
        Get file path for a storage key.

        Raises:
            ValueError: If the key could escape the blob directory
        """
        # Older catalogs use the original filename as the key, spaces included.
        if not key or key.startswith('.') or _FORBIDDEN_KEY_CHARS.search(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / key

    def put(self, key: str, data: bytes) -> str:
        """
        Write blob data atomically.

        Args:
            key: Storage key
            data: Raw (possibly encrypted) bytes

        Returns:
            The storage key
        """
        with self.staged_write() as staged:
            staged.write(data)
            return staged.commit(key)

    @contextmanager
    def staged_write(self) -> Iterator[StagedBlob]:
        """
        Receive a blob into a staging file.

        Anything not committed by the time the block exits, including on
        exceptions and cancellation, is deleted.
        """
        self.ensure_directories()
        fd, temp_name = tempfile.mkstemp(dir=self.staging_dir, suffix=".part")
        os.close(fd)
        staged = StagedBlob(self, Path(temp_name))
        try:
            yield staged
        finally:
            staged.discard()

    def get(self, key: str) -> bytes:
        """
        Read an entire blob.

        Raises:
            BlobNotFoundError: If no blob exists under key
        """
        path = self.get_blob_path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise BlobNotFoundError(f"Blob {key} not found") from None

    def open_stream(self, key: str, piece_size: int = 64 * 1024) -> Iterator[bytes]:
        """
        Stream blob data in pieces.

        The file is opened before the first piece is requested, so a missing
        blob raises here rather than halfway through a response.

        Raises:
            BlobNotFoundError: If no blob exists under key
        """
        path = self.get_blob_path(key)
        try:
            f = open(path, 'rb')
        except FileNotFoundError:
            raise BlobNotFoundError(f"Blob {key} not found") from None

        def pieces():
            with f:
                while True:
                    piece = f.read(piece_size)
                    if not piece:
                        break
                    yield piece

        return pieces()

    def delete(self, key: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if the blob was deleted, False if it didn't exist
        """
        path = self.get_blob_path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    def exists(self, key: str) -> bool:
        return self.get_blob_path(key).is_file()

    def size(self, key: str) -> Optional[int]:
        """Size of a blob in bytes, or None if it doesn't exist."""
        path = self.get_blob_path(key)
        if path.is_file():
            return path.stat().st_size
        return None

    def list_keys(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file())
