"""Entry point for the storage node service."""

import time
import uuid
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse

from common.exceptions import (
    StashError,
    ValidationError,
    NotFoundError,
    StorageCorruptedError,
    PayloadTooLargeError,
    CatalogError,
    ConflictError,
)
from common.logging_config import setup_logging
from node import config
from node.routes.file_routes import router as file_router
from node.service_locator import get_blob_store, get_catalog
from node.services.file_service import FileService

logger = setup_logging('node')

app = FastAPI(
    title="Stashnode",
    description="Single-node storage for end-to-end encrypted file uploads",
    version="1.0.0"
)


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "code": code}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Prepare storage directories and report catalog/blob drift.
    """
    logger.info("Storage node starting up...")

    blob_store = get_blob_store()
    blob_store.ensure_directories()
    catalog = get_catalog()
    logger.info(f"Blob directory: {blob_store.root}")
    logger.info(f"Catalog: {catalog.path} ({len(catalog)} entries)")

    dangling = FileService(catalog=catalog, blob_store=blob_store).find_dangling_entries()
    for entry in dangling:
        logger.warning(f"Catalog entry {entry.identifier} ({entry.name}) has no blob at {entry.path}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Storage node shutting down...")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Request validation error: {exc.errors()} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", "VALIDATION_ERROR")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Validation error: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "VALIDATION_ERROR")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"File not found error: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc), "FILE_NOT_FOUND")


@app.exception_handler(PayloadTooLargeError)
async def payload_too_large_handler(request: Request, exc: PayloadTooLargeError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Payload too large: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, str(exc), "PAYLOAD_TOO_LARGE"
    )


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Upload conflict: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_409_CONFLICT, str(exc), "CONFLICT")


@app.exception_handler(StorageCorruptedError)
async def storage_corrupted_handler(request: Request, exc: StorageCorruptedError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Storage corrupted: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), "STORAGE_CORRUPTED"
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Catalog error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), "CATALOG_ERROR"
    )


@app.exception_handler(StashError)
async def stash_error_handler(request: Request, exc: StashError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled stash error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), "INTERNAL_ERROR"
    )


app.include_router(file_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "node"}


@app.api_route(
    "/api",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
@app.api_route(
    "/api/{rest:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def api_not_found(rest: str = ""):
    return _error_response(status.HTTP_404_NOT_FOUND, "API route not found", "ROUTE_NOT_FOUND")


@app.get("/{rest:path}", include_in_schema=False)
async def serve_ui(rest: str):
    """
    Serve the web UI: static assets when they exist, index.html otherwise.
    """
    static_dir = Path(config.STATIC_DIR).resolve()

    if rest:
        candidate = (static_dir / rest).resolve()
        if candidate.is_file() and static_dir in candidate.parents:
            return FileResponse(candidate)

    index = static_dir / "index.html"
    if index.is_file():
        return FileResponse(index)

    return _error_response(status.HTTP_404_NOT_FOUND, "UI not available", "UI_NOT_FOUND")


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "node.main:app",
        host=config.NODE_HOST,
        port=config.NODE_PORT,
    )


if __name__ == "__main__":
    main()
