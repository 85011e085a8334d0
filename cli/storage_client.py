"""HTTP client for communicating with a storage node."""

import mimetypes
import time
import uuid
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import httpx

from common import crypto_codec
from common.content_id import identify, verify_identifier
from common.exceptions import (
    ConflictError,
    DecryptionError,
    InvalidKeyError,
    NotFoundError,
    PayloadTooLargeError,
    StashError,
    StorageCorruptedError,
    ValidationError,
)
from common.logging_config import get_logger
from common.types import FileMetadata, StorageQuota
from cli.config import Config
from cli.models import DownloadedFile, RemoteFile

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = (502, 503, 504)

QUOTA_TOTAL_GB = 10.0
QUOTA_COST_PER_MONTH = 10.0

_ERROR_CODES = {
    'VALIDATION_ERROR': ValidationError,
    'FILE_NOT_FOUND': NotFoundError,
    'ROUTE_NOT_FOUND': NotFoundError,
    'STORAGE_CORRUPTED': StorageCorruptedError,
    'PAYLOAD_TOO_LARGE': PayloadTooLargeError,
    'CONFLICT': ConflictError,
}

_ERROR_STATUSES = {
    400: ValidationError,
    404: NotFoundError,
    409: ConflictError,
    413: PayloadTooLargeError,
}


class StorageClient:
    """HTTP client for the storage node API with retry logic and client-side encryption."""

    def __init__(self, config: Config):
        """
        Initialize storage client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized StorageClient [base_url={config.get_base_url()}]")

    def _calculate_upload_timeout(self, file_size: int) -> float:
        """
        Calculate timeout for upload based on file size.

        Returns:
            Timeout in seconds (30s base + 0.1s per MB)
        """
        base_timeout = 30.0
        size_mb = file_size / (1024 * 1024)
        return base_timeout + size_mb * 0.1

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry on network failures and 502/503/504.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(
            f"Making request: {method} {endpoint} [request_id={self.request_id}]"
        )

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if response.status_code in RETRYABLE_STATUS_CODES and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Node unavailable (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                if response.status_code >= 400:
                    logger.warning(
                        f"Request failed: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                    )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Node may be overloaded.")
        raise ConnectionError("Cannot connect to storage node. Is it running?")

    def _raise_for_error(self, response: httpx.Response) -> None:
        """
        Map an error response to the matching exception.

        Raises:
            ValidationError, NotFoundError, StorageCorruptedError,
            PayloadTooLargeError or StashError for any other failure
        """
        if response.status_code < 400:
            return

        try:
            error_data = response.json()
            message = error_data.get('error') or error_data.get('detail') or 'Unknown error'
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            message = response.text or 'Unknown error'
            code = 'UNKNOWN'

        exc_class = _ERROR_CODES.get(code) or _ERROR_STATUSES.get(response.status_code)
        if exc_class is None:
            raise StashError(f"{message} (HTTP {response.status_code}, code {code})")
        raise exc_class(message)

    def upload_file(
        self,
        file_path: str,
        passphrase: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> RemoteFile:
        """
        Upload a file, encrypting it locally first when a passphrase is given.

        Args:
            file_path: Local path of the file
            passphrase: Encrypt with this passphrase (None uploads plaintext)
            mime_type: MIME type to record (guessed from the name if None)

        Returns:
            Metadata recorded by the node

        Raises:
            ValidationError: Missing or empty file, empty passphrase (no request is sent)
            ConflictError: The hash is already stored with other bytes or encryption
        """
        path = Path(file_path)
        if not path.is_file():
            raise ValidationError(f"File not found: {file_path}")

        plaintext = path.read_bytes()
        if not plaintext:
            raise ValidationError(f"File is empty: {file_path}")
        if passphrase is not None and not passphrase:
            raise ValidationError("Passphrase must not be empty")

        identifier = identify(plaintext)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0]

        is_encrypted = passphrase is not None
        if is_encrypted:
            logger.info(f"Encrypting {path.name} before upload")
            body = crypto_codec.encrypt(plaintext, passphrase).encode('ascii')
            content_type = 'application/octet-stream'
        else:
            body = plaintext
            content_type = mime_type or 'application/octet-stream'

        data = {
            'isEncrypted': 'true' if is_encrypted else 'false',
            'hash': identifier,
        }
        if mime_type:
            data['mimeType'] = mime_type

        logger.info(f"Uploading {path.name} ({len(body)} bytes, encrypted={is_encrypted})")
        response = self._request_with_retry(
            'POST',
            '/api/upload',
            files={'file': (path.name, body, content_type)},
            data=data,
            timeout=self._calculate_upload_timeout(len(body)),
        )
        self._raise_for_error(response)

        remote = RemoteFile(FileMetadata.from_record(response.json()))
        if remote.is_encrypted != is_encrypted or remote.hash != identifier:
            raise ConflictError(
                f"Node answered with a different object for {path.name} "
                f"[hash={remote.hash}, encrypted={remote.is_encrypted}]"
            )
        logger.info(f"Upload successful [hash={remote.hash}]")
        return remote

    def list_files(self) -> List[RemoteFile]:
        """List every stored file in upload order."""
        response = self._request_with_retry('GET', '/api/files')
        self._raise_for_error(response)
        return [RemoteFile(FileMetadata.from_record(record)) for record in response.json()]

    def search_files(self, query: str) -> List[RemoteFile]:
        """
        Find files whose name contains query (any case) or whose hash contains query.
        """
        response = self._request_with_retry('GET', '/api/files', params={'q': query})
        self._raise_for_error(response)
        return [RemoteFile(FileMetadata.from_record(record)) for record in response.json()]

    def get_metadata(self, identifier: str) -> RemoteFile:
        """
        Raises:
            NotFoundError: Unknown identifier
        """
        response = self._request_with_retry('GET', f'/api/files/{quote(identifier, safe="")}')
        self._raise_for_error(response)
        return RemoteFile(FileMetadata.from_record(response.json()))

    def get_file(self, identifier: str, passphrase: Optional[str] = None) -> DownloadedFile:
        """
        Download a file and reverse the client-side encryption.

        Without a passphrase an encrypted file is returned as stored
        (ciphertext, decrypted=False).

        Raises:
            NotFoundError: Unknown identifier
            StorageCorruptedError: Blob missing on the node, or content does not match its hash
            InvalidKeyError: Wrong passphrase or corrupt ciphertext
        """
        remote = self.get_metadata(identifier)

        response = self._request_with_retry('GET', f'/api/download/{quote(remote.path, safe="")}')
        self._raise_for_error(response)
        data = response.content

        decrypted = False
        if remote.is_encrypted and passphrase is not None:
            logger.info(f"Decrypting {remote.name}")
            try:
                data = crypto_codec.decrypt(data, passphrase)
            except DecryptionError as e:
                logger.warning(f"Decryption failed for {remote.hash}: {e}")
                raise InvalidKeyError("Decryption failed. Invalid key?") from e
            decrypted = True

        if (not remote.is_encrypted or decrypted) and not verify_identifier(data, remote.hash):
            raise StorageCorruptedError(f"Content of {remote.name} does not match hash {remote.hash}")

        return DownloadedFile(
            name=remote.name,
            data=data,
            mime_type=remote.mime_type or 'application/octet-stream',
            is_encrypted=remote.is_encrypted,
            decrypted=decrypted,
        )

    def delete_file(self, identifier: str) -> None:
        """
        Raises:
            NotFoundError: Unknown identifier
        """
        response = self._request_with_retry('DELETE', f'/api/files/{quote(identifier, safe="")}')
        self._raise_for_error(response)
        logger.info(f"Deleted {identifier}")

    def get_storage_quota(self) -> StorageQuota:
        """
        Storage usage for display. The total is a fixed figure, never enforced.
        """
        used_bytes = sum(remote.size for remote in self.list_files())
        used_gb = used_bytes / (1024 ** 3)
        return StorageQuota(
            total_gb=QUOTA_TOTAL_GB,
            used_gb=used_gb,
            available_gb=max(QUOTA_TOTAL_GB - used_gb, 0.0),
            cost_per_month=QUOTA_COST_PER_MONTH,
        )

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
