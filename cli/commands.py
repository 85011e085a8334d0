"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.content_id import is_identifier
from common.exceptions import (
    InvalidKeyError,
    NotFoundError,
    StashError,
    StorageCorruptedError,
    ValidationError,
)
from common.logging_config import get_logger
from cli.config import Config
from cli.constants import DEFAULT_DOWNLOAD_DIR
from cli.models import (
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    QuotaCommand,
    SearchCommand,
    UploadCommand,
)
from cli.storage_client import StorageClient
from cli.utils import format_file_size, format_remote_file

logger = get_logger(__name__)


_client: Optional[StorageClient] = None


def get_client() -> StorageClient:
    """
    Get or create global StorageClient instance.
    """
    global _client
    if _client is None:
        logger.debug("Creating new StorageClient instance")
        config = Config(Path.home() / '.stashnode' / 'config.json')
        _client = StorageClient(config)
    return _client


def _error_message(error: Exception) -> str:
    if isinstance(error, InvalidKeyError):
        return "Error: Decryption failed. Check your passphrase."
    if isinstance(error, StorageCorruptedError):
        return f"Error: Stored data is damaged: {error}"
    if isinstance(error, NotFoundError):
        return f"Error: Not found: {error}"
    return f"Error: {error}"


def resolve_identifier(client: StorageClient, reference: str) -> str:
    """
    Expand a hash prefix or exact filename to a full hash.

    Raises:
        NotFoundError: Nothing matches
        ValidationError: More than one file matches
    """
    if is_identifier(reference):
        return reference

    matches = [
        remote for remote in client.search_files(reference)
        if remote.hash.startswith(reference) or remote.name == reference
    ]
    if not matches:
        raise NotFoundError(f"No file matches '{reference}'")
    if len(matches) > 1:
        raise ValidationError(
            f"'{reference}' matches {len(matches)} files, use a longer hash prefix"
        )
    return matches[0].hash


def handle_upload(
    cmd: UploadCommand,
    client: Optional[StorageClient] = None,
    passphrase: Optional[str] = None,
) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file_path and encrypt flag
        client: Optional StorageClient for dependency injection (testing)
        passphrase: Passphrase entered for this upload (required with --encrypt)

    Returns:
        Success or error message
    """
    logger.info(f"Executing upload command: path={cmd.file_path} encrypt={cmd.encrypt}")
    if cmd.encrypt and not passphrase:
        return "Error: --encrypt needs a non-empty passphrase"

    if client is None:
        client = get_client()

    try:
        remote = client.upload_file(cmd.file_path, passphrase=passphrase if cmd.encrypt else None)
    except (StashError, ConnectionError) as e:
        return _error_message(e)

    state = "encrypted" if remote.is_encrypted else "plaintext"
    return f"Uploaded: {remote.name} ({format_file_size(remote.size)} stored, {state})\nHash: {remote.hash}"


def handle_list(cmd: ListCommand, client: Optional[StorageClient] = None) -> str:
    """
    Handle 'list' command.

    Returns:
        Formatted list of files
    """
    if client is None:
        client = get_client()

    try:
        files = client.list_files()
    except (StashError, ConnectionError) as e:
        return _error_message(e)

    if not files:
        return "No files stored."
    lines = [f"Found {len(files)} file(s):"]
    lines.extend(format_remote_file(remote) for remote in files)
    return "\n".join(lines)


def handle_search(cmd: SearchCommand, client: Optional[StorageClient] = None) -> str:
    """
    Handle 'search' command.

    Returns:
        Formatted list of matching files
    """
    if client is None:
        client = get_client()

    try:
        files = client.search_files(cmd.query)
    except (StashError, ConnectionError) as e:
        return _error_message(e)

    if not files:
        return f"No files match '{cmd.query}'."
    lines = [f"Found {len(files)} file(s) matching '{cmd.query}':"]
    lines.extend(format_remote_file(remote) for remote in files)
    return "\n".join(lines)


def handle_download(
    cmd: DownloadCommand,
    client: Optional[StorageClient] = None,
    passphrase: Optional[str] = None,
) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with identifier, optional output_path and decrypt flag
        client: Optional StorageClient for dependency injection (testing)
        passphrase: Passphrase entered for this download (used with --decrypt)

    Returns:
        Success or error message with download results
    """
    logger.info(f"Executing download command: identifier={cmd.identifier} output_path={cmd.output_path}")
    if cmd.decrypt and not passphrase:
        return "Error: --decrypt needs a non-empty passphrase"

    if client is None:
        client = get_client()

    try:
        identifier = resolve_identifier(client, cmd.identifier)
        downloaded = client.get_file(identifier, passphrase=passphrase if cmd.decrypt else None)
    except (StashError, ConnectionError) as e:
        return _error_message(e)

    output_file = Path(cmd.output_path) if cmd.output_path else Path(DEFAULT_DOWNLOAD_DIR) / downloaded.name
    if output_file.is_dir():
        output_file = output_file / downloaded.name

    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_bytes(downloaded.data)
    except OSError as e:
        return f"Error writing file: {e}"

    note = ""
    if downloaded.is_encrypted and not downloaded.decrypted:
        note = "\nNote: file is encrypted and was saved as ciphertext (use --decrypt)"
    return (
        f"Downloaded: {downloaded.name} ({format_file_size(len(downloaded.data))})\n"
        f"Saved to: {output_file.absolute()}{note}"
    )


def handle_delete(cmd: DeleteCommand, client: Optional[StorageClient] = None) -> str:
    """
    Handle 'delete' command.

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()

    try:
        identifier = resolve_identifier(client, cmd.identifier)
        client.delete_file(identifier)
    except (StashError, ConnectionError) as e:
        return _error_message(e)

    return f"Deleted: {identifier}"


def handle_quota(cmd: QuotaCommand, client: Optional[StorageClient] = None) -> str:
    """
    Handle 'quota' command.
    """
    if client is None:
        client = get_client()

    try:
        quota = client.get_storage_quota()
    except (StashError, ConnectionError) as e:
        return _error_message(e)

    return (
        f"Used: {quota.used_gb:.3f} GB of {quota.total_gb:.0f} GB "
        f"({quota.available_gb:.3f} GB available, ${quota.cost_per_month:.2f}/month)"
    )
