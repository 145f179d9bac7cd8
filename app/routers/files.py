# app/routers/files.py
"""
File endpoints.

POST   /v1/files/upload                  - Upload up to N code files
POST   /v1/files/batch                   - Retrieve several files
GET    /v1/files/{file_id}/download      - Raw bytes
GET    /v1/files/{file_id}/exists        - Existence check
GET    /v1/files/{file_id}/metadata      - Stored metadata
GET    /v1/files/{file_id}               - File content as text
DELETE /v1/files/{file_id}               - Delete a file

Every endpoint accepts ?provider=<name>; the configured default is used
otherwise. File ids may contain slashes (object-storage paths).
"""

import json
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile

from app.config import Settings, get_settings
from app.schemas.files import (
    BatchRetrieveError,
    BatchRetrieveRequest,
    BatchRetrieveResponse,
    DeleteResponse,
    ExistsResponse,
    FileContentResponse,
    FileMetadataResponse,
    UploadedFileResponse,
    UploadResponse,
)
from app.services.file_storage import FileStorageService, get_file_storage_service
from app.storage.base import FileMetadata, FileType, Purpose, RetrievalResult, UploadedFile
from app.utils.file_validation import is_valid_file_type, sanitize_metadata, validate_file_size

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/files", tags=["files"])


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _content_response(file_id: str, result: RetrievalResult) -> FileContentResponse:
    return FileContentResponse(
        file_id=file_id,
        content=result.content,
        size=len(result.buffer),
        provider=result.provider,
        from_cache=result.from_cache,
    )


def _parse_metadata_json(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"metadata is not valid JSON: {e}")
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=400, detail="metadata must be a JSON object")
    return parsed


async def _read_upload(upload: UploadFile, settings: Settings) -> UploadedFile:
    """Buffer one upload, enforcing the extension allow-list and size ceiling."""
    filename = upload.filename or ""
    if not is_valid_file_type(filename, settings.allowed_extensions):
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed: '{filename}'. Allowed: {', '.join(settings.allowed_extensions)}",
        )

    too_large = HTTPException(
        status_code=413,
        detail=f"File '{filename}' exceeds the {settings.MAX_FILE_SIZE_BYTES} byte limit",
    )
    # Reject on the declared size before buffering the body
    if upload.size is not None and not validate_file_size(upload.size, settings.MAX_FILE_SIZE_BYTES):
        raise too_large

    content = await upload.read()
    if not validate_file_size(len(content), settings.MAX_FILE_SIZE_BYTES):
        raise too_large

    return UploadedFile(
        filename=filename,
        content=content,
        content_type=upload.content_type or "application/octet-stream",
        size=len(content),
    )


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_files(
    files: list[UploadFile] = File(..., alias="codeFiles", description="Source files to store"),
    user_id: str | None = Form(None),
    file_type: FileType | None = Form(None),
    language: str | None = Form(None),
    purpose: Purpose | None = Form(None),
    metadata: str | None = Form(None, description="Extra metadata as a JSON object"),
    provider: str | None = Query(None),
    settings: Settings = Depends(get_settings),
    service: FileStorageService = Depends(get_file_storage_service),
) -> UploadResponse:
    """
    Upload one or more code files with shared metadata.

    Files are validated before anything is stored; the whole request is
    rejected if any file fails validation. If storing one file fails, the
    files already stored by this request are deleted (form field: codeFiles).
    """
    if len(files) > settings.MAX_FILES_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files: {len(files)} (max {settings.MAX_FILES_PER_REQUEST})",
        )

    raw_metadata = _parse_metadata_json(metadata)
    for key, value in (
        ("user_id", user_id),
        ("file_type", file_type),
        ("language", language),
        ("purpose", purpose),
    ):
        if value is not None:
            raw_metadata[key] = value

    try:
        file_metadata = sanitize_metadata(FileMetadata.from_dict(raw_metadata))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid metadata: {e}")

    uploads = [await _read_upload(upload, settings) for upload in files]

    stored = await service.upload_files(uploads, file_metadata, provider)
    results = [UploadedFileResponse.model_validate(result, from_attributes=True) for result in stored]

    logger.info(
        f"Uploaded {len(results)} file(s) to {results[0].provider if results else provider}",
        extra={"event": "files_uploaded", "items_processed": len(results)},
    )
    return UploadResponse(files=results, total=len(results))


@router.post("/batch", response_model=BatchRetrieveResponse, response_model_exclude_none=True)
async def retrieve_files(
    request: BatchRetrieveRequest,
    service: FileStorageService = Depends(get_file_storage_service),
) -> BatchRetrieveResponse:
    """Retrieve several files; ids that fail are dropped unless include_errors is set."""
    items = await service.retrieve_multiple_files_detailed(request.file_ids, request.provider)

    files = [_content_response(item.file_id, item.result) for item in items if item.ok]
    errors = None
    if request.include_errors:
        errors = [BatchRetrieveError(file_id=item.file_id, error=item.error) for item in items if not item.ok]

    return BatchRetrieveResponse(files=files, total=len(files), errors=errors)


@router.get("/{file_id:path}/download")
async def download_file(
    file_id: str,
    provider: str | None = Query(None),
    service: FileStorageService = Depends(get_file_storage_service),
) -> Response:
    result = await service.retrieve_file(file_id, provider)
    return Response(
        content=result.buffer,
        media_type="application/octet-stream",
        headers={"X-Storage-Provider": result.provider},
    )


@router.get("/{file_id:path}/exists", response_model=ExistsResponse)
async def file_exists(
    file_id: str,
    provider: str | None = Query(None),
    service: FileStorageService = Depends(get_file_storage_service),
) -> ExistsResponse:
    exists = await service.file_exists(file_id, provider)
    return ExistsResponse(
        file_id=file_id,
        exists=exists,
        provider=provider or service.factory.default_provider,
    )


@router.get("/{file_id:path}/metadata", response_model=FileMetadataResponse)
async def get_file_metadata(
    file_id: str,
    provider: str | None = Query(None),
    service: FileStorageService = Depends(get_file_storage_service),
) -> FileMetadataResponse:
    result = await service.get_file_metadata(file_id, provider)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No metadata found for file: {file_id}")
    return FileMetadataResponse.from_result(result)


@router.get("/{file_id:path}", response_model=FileContentResponse)
async def get_file(
    file_id: str,
    provider: str | None = Query(None),
    service: FileStorageService = Depends(get_file_storage_service),
) -> FileContentResponse:
    result = await service.retrieve_file(file_id, provider)
    return _content_response(file_id, result)


@router.delete("/{file_id:path}", response_model=DeleteResponse)
async def delete_file(
    file_id: str,
    provider: str | None = Query(None),
    service: FileStorageService = Depends(get_file_storage_service),
) -> DeleteResponse:
    result = await service.delete_file(file_id, provider)
    return DeleteResponse.model_validate(result, from_attributes=True)
