# app/main.py
"""
Code file storage API.

Accepts uploaded source files and stores them through a pluggable storage
provider (GridFS, Supabase Storage, S3, local filesystem).
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.database import close_database, connect_database
from app.logging_config import configure_logging, request_id_var
from app.routers import files_router, storage_router
from app.storage.exceptions import (
    ProviderNotFoundError,
    StorageConfigurationError,
    StorageError,
    StorageFileNotFoundError,
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    if settings.MONGODB_URI:
        connect_database(settings.MONGODB_URI, settings.MONGODB_DB_NAME)

    logger.info(f"Code storage API started (environment={settings.ENVIRONMENT})")
    try:
        yield
    finally:
        close_database()


app = FastAPI(title="Code Storage API", version=VERSION, lifespan=lifespan)

app.include_router(files_router)
app.include_router(storage_router)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(StorageFileNotFoundError)
async def file_not_found_handler(request: Request, exc: StorageFileNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    return JSONResponse(status_code=502, content=exc.to_dict())


@app.exception_handler(ProviderNotFoundError)
async def provider_not_found_handler(request: Request, exc: ProviderNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc), "available": exc.available},
    )


@app.exception_handler(StorageConfigurationError)
async def storage_configuration_handler(request: Request, exc: StorageConfigurationError) -> JSONResponse:
    logger.error(f"Storage provider {exc.provider} is not configured: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "provider": exc.provider},
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "code-storage-api", "version": VERSION}


@app.get("/")
def root() -> dict:
    return {
        "service": "Code Storage API",
        "version": VERSION,
        "endpoints": {
            "upload": "POST /v1/files/upload",
            "batch": "POST /v1/files/batch",
            "file": "GET /v1/files/{file_id}",
            "download": "GET /v1/files/{file_id}/download",
            "metadata": "GET /v1/files/{file_id}/metadata",
            "exists": "GET /v1/files/{file_id}/exists",
            "delete": "DELETE /v1/files/{file_id}",
            "providers": "GET /v1/storage/providers",
            "health": "GET /v1/storage/health",
            "switch": "POST /v1/storage/switch",
        },
    }
