"""Service layer for business logic."""

from node.services.file_service import FileService

__all__ = [
    "FileService",
]
