"""File operation API routes."""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse

from common.exceptions import ValidationError
from node import config
from node.schemas.common import ErrorResponse
from node.schemas.files import DeleteFileResponse, FileMetadataResponse
from node.services.file_service import FileService
from node.utils import content_disposition, parse_flag

router = APIRouter(prefix="/api", tags=["Files"])

NOT_FOUND = {404: {"model": ErrorResponse}}


async def _read_pieces(upload: UploadFile):
    while True:
        piece = await upload.read(config.UPLOAD_PIECE_SIZE)
        if not piece:
            break
        yield piece


@router.post(
    "/upload",
    response_model=FileMetadataResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 409, 413, 500)},
)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    is_encrypted: str = Form("false", alias="isEncrypted"),
    content_hash: Optional[str] = Form(None, alias="hash"),
    mime_type: Optional[str] = Form(None, alias="mimeType"),
):
    """
    Upload a file, optionally encrypted by the client beforehand.

    Parameters:
        - file: File to upload (multipart/form-data)
        - isEncrypted: "true" when the file part is ciphertext
        - hash: Content identifier of the plaintext (required when encrypted)
        - mimeType: MIME type of the plaintext, stored as metadata only

    Returns:
        - name, size, hash, uploadedAt, path, isEncrypted, mimeType

    Raises:
        - 400: File part missing or empty, invalid or mismatching hash
        - 409: Hash already stored with different bytes or encryption flag
        - 413: File too large
        - 500: Catalog could not be written
    """
    if file is None:
        raise ValidationError("No file uploaded")

    file_service = FileService()

    try:
        entry, _ = await file_service.upload_file(
            file_name=file.filename,
            pieces=_read_pieces(file),
            is_encrypted=parse_flag(is_encrypted),
            client_hash=content_hash,
            mime_type=mime_type,
        )
    finally:
        await file.close()

    return FileMetadataResponse.from_metadata(entry)


@router.get("/files", response_model=List[FileMetadataResponse])
async def list_files(
    q: str = Query("", description="Substring of a filename (any case) or hash"),
):
    """
    List catalog entries in upload order.

    Parameters:
        - q: Optional search query; empty returns every entry

    Returns:
        - Array of file metadata
    """
    file_service = FileService()
    return [FileMetadataResponse.from_metadata(entry) for entry in file_service.list_files(q)]


@router.get("/files/{identifier}", response_model=FileMetadataResponse, responses=NOT_FOUND)
async def get_file_metadata(identifier: str):
    """
    Get metadata for one file.

    Raises:
        - 404: Unknown identifier
    """
    file_service = FileService()
    return FileMetadataResponse.from_metadata(file_service.get_file_metadata(identifier))


@router.delete("/files/{identifier}", response_model=DeleteFileResponse, responses=NOT_FOUND)
async def delete_file(identifier: str):
    """
    Delete a file's blob and catalog entry.

    Raises:
        - 404: Unknown identifier
    """
    file_service = FileService()
    loop = asyncio.get_event_loop()
    removed = await loop.run_in_executor(None, file_service.delete_file, identifier)
    return DeleteFileResponse(hash=removed.identifier, deleted=True)


@router.get(
    "/download/{reference}",
    responses={**NOT_FOUND, 500: {"model": ErrorResponse}},
)
async def download_file(reference: str):
    """
    Download stored bytes by identifier, storage path or filename.

    Encrypted files are returned as stored; decryption happens on the client.

    Returns:
        - StreamingResponse with the blob bytes

    Raises:
        - 404: No catalog entry matches
        - 500: Entry exists but its blob is missing (STORAGE_CORRUPTED)
    """
    file_service = FileService()

    entry, stream = file_service.open_download(reference)

    if entry.is_encrypted or not entry.mime_type:
        media_type = "application/octet-stream"
    else:
        media_type = entry.mime_type

    return StreamingResponse(
        stream,
        media_type=media_type,
        headers={
            "Content-Disposition": content_disposition(entry.name),
            "Content-Length": str(entry.size),
        }
    )
