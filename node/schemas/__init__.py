"""Pydantic schemas for API requests and responses."""

from node.schemas.files import (
    FileMetadataResponse,
    DeleteFileResponse
)
from node.schemas.common import ErrorResponse

__all__ = [
    "FileMetadataResponse",
    "DeleteFileResponse",
    "ErrorResponse"
]
