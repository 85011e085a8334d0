"""File service for the upload, download and delete pipelines."""

import asyncio
import threading
from typing import AsyncIterator, Iterator, List, Optional, Tuple

from common.content_id import IncrementalIdentifier, is_identifier
from common.exceptions import (
    BlobNotFoundError,
    ConflictError,
    NotFoundError,
    PayloadTooLargeError,
    StorageCorruptedError,
    ValidationError,
)
from common.logging_config import get_logger
from common.types import FileMetadata, utc_now
from node import config
from node.blob_store import BlobStore, StagedBlob
from node.catalog import Catalog
from node.service_locator import get_blob_store, get_catalog

logger = get_logger(__name__)

# Guards the check-commit-append sequence of uploads and the
# remove-unlink sequence of deletes across all requests.
_commit_lock = threading.Lock()


class FileService:
    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        blob_store: Optional[BlobStore] = None,
        max_upload_bytes: Optional[int] = None,
    ):
        self.catalog = catalog if catalog is not None else get_catalog()
        self.blob_store = blob_store if blob_store is not None else get_blob_store()
        self.max_upload_bytes = max_upload_bytes if max_upload_bytes is not None else config.MAX_UPLOAD_BYTES

    async def upload_file(
        self,
        file_name: str,
        pieces: AsyncIterator[bytes],
        is_encrypted: bool,
        client_hash: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> Tuple[FileMetadata, bool]:
        """
        Receive a blob, persist it and record its metadata.

        Args:
            file_name: Original filename supplied by the client
            pieces: Body of the file part
            is_encrypted: Whether the body is ciphertext
            client_hash: Identifier computed by the client over the plaintext
            mime_type: Client-supplied MIME type of the plaintext

        Returns:
            (metadata, created) where created is False when identical content
            was already stored

        Raises:
            ValidationError: Empty body, missing or mismatching identifier
            PayloadTooLargeError: Body exceeds the configured limit
            ConflictError: Identifier already stored with different bytes or encryption flag
            CatalogError: Metadata could not be persisted (blob is rolled back)
        """
        if not file_name:
            raise ValidationError("Uploaded file has no filename")

        client_hash = (client_hash or '').strip() or None
        if is_encrypted:
            if client_hash is None:
                raise ValidationError("Encrypted uploads must include the plaintext hash")
            if not is_identifier(client_hash):
                raise ValidationError(f"Invalid hash: {client_hash!r}")

        logger.info(f"Receiving upload [name={file_name}, encrypted={is_encrypted}]")

        digest = IncrementalIdentifier()
        with self.blob_store.staged_write() as staged:
            async for piece in pieces:
                if digest.size + len(piece) > self.max_upload_bytes:
                    raise PayloadTooLargeError(
                        f"Upload exceeds the limit of {self.max_upload_bytes} bytes"
                    )
                digest.update(piece)
                staged.write(piece)

            if digest.size == 0:
                raise ValidationError("Uploaded file is empty")

            received_hash = digest.finalize()
            if is_encrypted:
                identifier = client_hash
            else:
                if client_hash is not None and client_hash != received_hash:
                    raise ValidationError("Hash does not match the uploaded content")
                identifier = received_hash

            loop = asyncio.get_event_loop()
            entry, created = await loop.run_in_executor(
                None,
                self._commit_upload,
                staged,
                identifier,
                file_name,
                digest.size,
                received_hash,
                is_encrypted,
                mime_type or None,
            )

        if created:
            logger.info(f"Upload complete [hash={identifier}, name={file_name}]")
        return entry, created

    def _commit_upload(
        self,
        staged: StagedBlob,
        identifier: str,
        file_name: str,
        size: int,
        content_digest: str,
        is_encrypted: bool,
        mime_type: Optional[str],
    ) -> Tuple[FileMetadata, bool]:
        """
        Check for an existing entry, then move the staged blob into place and
        record it. Runs in a worker thread.

        Raises:
            ConflictError: The identifier is already stored with other bytes
                or a different encryption flag
            CatalogError: Metadata could not be persisted (blob is rolled back)
        """
        with _commit_lock:
            existing = self.catalog.get(identifier)
            if existing is not None:
                self._check_duplicate(existing, size, content_digest, is_encrypted)
                logger.info(f"Identical content already stored, reusing entry [hash={identifier}]")
                return existing, False

            entry = FileMetadata(
                identifier=identifier,
                name=file_name,
                size=size,
                is_encrypted=is_encrypted,
                uploaded_at=utc_now(),
                path=identifier,
                mime_type=mime_type,
            )

            staged.commit(entry.path)
            logger.info(f"Persisted blob [key={entry.path}, size={entry.size}]")

            try:
                self.catalog.append(entry)
            except Exception as e:
                logger.error(f"Recording metadata failed for {identifier}, removing blob: {e}")
                self.blob_store.delete(entry.path)
                raise

        return entry, True

    def _check_duplicate(
        self,
        existing: FileMetadata,
        size: int,
        content_digest: str,
        is_encrypted: bool,
    ) -> None:
        """
        An upload may only reuse an entry holding byte-identical content with
        the same encryption flag.
        """
        if existing.is_encrypted != is_encrypted:
            stored_as = "encrypted" if existing.is_encrypted else "plaintext"
            logger.warning(
                f"Upload of {existing.identifier} (encrypted={is_encrypted}) collides with {stored_as} entry"
            )
            raise ConflictError(f"File {existing.identifier} is already stored as {stored_as}")

        if existing.size != size or self._stored_digest(existing) != content_digest:
            logger.warning(f"Upload of {existing.identifier} differs from the stored blob")
            raise ConflictError(f"File {existing.identifier} is already stored with different content")

    def _stored_digest(self, entry: FileMetadata) -> Optional[str]:
        """SHA-256 of the entry's blob as stored, or None if it cannot be read."""
        digest = IncrementalIdentifier()
        try:
            for piece in self.blob_store.open_stream(entry.path, piece_size=config.UPLOAD_PIECE_SIZE):
                digest.update(piece)
        except (BlobNotFoundError, ValueError):
            return None
        return digest.finalize()

    def list_files(self, query: str = '') -> List[FileMetadata]:
        return self.catalog.search(query)

    def get_file_metadata(self, identifier: str) -> FileMetadata:
        entry = self.catalog.get(identifier)
        if entry is None:
            raise NotFoundError(f"File {identifier} not found")
        return entry

    def open_download(self, reference: str) -> Tuple[FileMetadata, Iterator[bytes]]:
        """
        Resolve a reference and open its blob for streaming.

        Args:
            reference: Identifier, storage path or filename

        Raises:
            NotFoundError: No catalog entry matches
            StorageCorruptedError: The entry's blob is missing or truncated
        """
        entry = self.catalog.resolve(reference)
        if entry is None:
            raise NotFoundError(f"File {reference} not found")

        try:
            stored_size = self.blob_store.size(entry.path)
            if stored_size is None:
                raise BlobNotFoundError(f"Blob {entry.path} not found")
            if stored_size != entry.size:
                raise StorageCorruptedError(
                    f"Blob {entry.path} is {stored_size} bytes, catalog records {entry.size}"
                )
            stream = self.blob_store.open_stream(entry.path, piece_size=config.UPLOAD_PIECE_SIZE)
        except (BlobNotFoundError, ValueError) as e:
            logger.error(f"Catalog entry {entry.identifier} has no readable blob: {e}")
            raise StorageCorruptedError(
                f"File {entry.identifier} is catalogued but its data is missing"
            ) from e

        logger.info(f"Starting download [hash={entry.identifier}, size={entry.size}]")
        return entry, stream

    def delete_file(self, identifier: str) -> FileMetadata:
        """
        Remove a file's catalog entry and its blob.

        Raises:
            NotFoundError: No entry has this identifier
        """
        with _commit_lock:
            removed = self.catalog.remove(identifier)
            if removed is None:
                raise NotFoundError(f"File {identifier} not found")

            if not self.blob_store.delete(removed.path):
                logger.warning(f"Blob {removed.path} was already missing while deleting {identifier}")

        logger.info(f"Deleted file [hash={identifier}, name={removed.name}]")
        return removed

    def find_dangling_entries(self) -> List[FileMetadata]:
        """
        Catalog entries whose blob is absent from the blob store.
        """
        return [
            entry for entry in self.catalog.list()
            if not self.blob_store.exists(entry.path)
        ]
