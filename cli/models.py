"""Command requests and client-side file types for the CLI."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from common.types import FileMetadata


@dataclass(frozen=True)
class RemoteFile:
    """File metadata as reported by the storage node."""

    metadata: FileMetadata

    @property
    def id(self) -> str:
        return self.metadata.identifier

    @property
    def hash(self) -> str:
        return self.metadata.identifier

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def size(self) -> int:
        return self.metadata.size

    @property
    def is_encrypted(self) -> bool:
        return self.metadata.is_encrypted

    @property
    def uploaded_at(self) -> datetime:
        return self.metadata.uploaded_at

    @property
    def path(self) -> str:
        return self.metadata.path

    @property
    def mime_type(self) -> Optional[str]:
        return self.metadata.mime_type


@dataclass(frozen=True)
class DownloadedFile:
    """Bytes fetched from the node, decrypted when a passphrase was given."""

    name: str
    data: bytes
    mime_type: str
    is_encrypted: bool
    decrypted: bool


@dataclass(frozen=True)
class UploadCommand:
    """Upload one file, optionally encrypting it first."""

    file_path: str
    encrypt: bool = False
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ListCommand:
    """List every stored file."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class SearchCommand:
    """Search files by name or hash substring."""

    query: str
    command: Literal["search"] = "search"


@dataclass(frozen=True)
class DownloadCommand:
    """Download file by hash or filename."""

    identifier: str
    output_path: Optional[str] = None
    decrypt: bool = False
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete a stored file by hash."""

    identifier: str
    command: Literal["delete"] = "delete"


@dataclass(frozen=True)
class QuotaCommand:
    """Show storage usage."""

    command: Literal["quota"] = "quota"


CommandRequest = (
    UploadCommand
    | ListCommand
    | SearchCommand
    | DownloadCommand
    | DeleteCommand
    | QuotaCommand
)
