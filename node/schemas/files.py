"""Pydantic schemas for file operation endpoints."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from common.types import FileMetadata


class FileMetadataResponse(BaseModel):
    """Response model for one catalog entry (upload result, listing item)."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    size: int
    hash: str
    uploaded_at: str = Field(alias="uploadedAt")
    path: str
    is_encrypted: bool = Field(alias="isEncrypted")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")

    @classmethod
    def from_metadata(cls, entry: FileMetadata) -> "FileMetadataResponse":
        return cls(**entry.to_record())


class DeleteFileResponse(BaseModel):
    """Response model for file deletion."""
    hash: str
    deleted: bool
