"""Shared data type definitions (FileMetadata, StorageQuota)."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with a 'Z' suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp written by format_timestamp()."""
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class FileMetadata:
    """
    Catalog entry for one stored object.
    """
    identifier: str
    name: str
    size: int
    is_encrypted: bool
    uploaded_at: datetime
    path: str
    mime_type: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """
        Serialize to the camelCase form used on the wire and on disk.
        """
        return {
            'name': self.name,
            'size': self.size,
            'hash': self.identifier,
            'uploadedAt': format_timestamp(self.uploaded_at),
            'path': self.path,
            'isEncrypted': self.is_encrypted,
            'mimeType': self.mime_type,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'FileMetadata':
        """
        Build an entry from its camelCase form.

        Raises:
            KeyError: If a required key is missing
        """
        identifier = record.get('hash') or record['id']
        return cls(
            identifier=identifier,
            name=record['name'],
            size=int(record['size']),
            is_encrypted=bool(record.get('isEncrypted', False)),
            uploaded_at=parse_timestamp(record['uploadedAt']),
            path=record.get('path') or identifier,
            mime_type=record.get('mimeType'),
        )


@dataclass(frozen=True)
class StorageQuota:
    """
    Storage figures shown to the user. Display only, never enforced.
    """
    total_gb: float
    used_gb: float
    available_gb: float
    cost_per_month: float
