# tests/test_api.py
"""
Contract tests for API responses.

The file service is bound to a local-filesystem factory; no live backends.
"""

import io

import pytest
from fastapi import HTTPException, UploadFile
from fastapi.testclient import TestClient

from app.config import Settings, get_settings
from app.main import app
from app.routers.files import _read_upload
from app.services.file_storage import FileStorageService, get_file_storage_service


@pytest.fixture
def client(local_factory):
    """Create test client with local storage and small upload limits."""
    settings = Settings(
        _env_file=None,
        STORAGE_PROVIDER="local",
        MAX_FILE_SIZE_BYTES=1024,
        MAX_FILES_PER_REQUEST=2,
    )
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_file_storage_service] = lambda: FileStorageService(local_factory)
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(client, *files, **form):
    return client.post(
        "/v1/files/upload",
        files=[("codeFiles", (name, body, "text/plain")) for name, body in files],
        data=form,
    )


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "code-storage-api"
        assert "version" in data

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["service"] == "Code Storage API"
        assert "upload" in data["endpoints"]

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestUploadEndpoint:
    """Test upload validation and response contract."""

    def test_upload_and_read_back(self, client):
        response = upload(client, ("a.ts", b"const a=1;"), user_id="u1")
        assert response.status_code == 201

        data = response.json()
        assert data["total"] == 1
        stored = data["files"][0]
        assert stored["filename"] == "a.ts"
        assert stored["size"] == 10
        assert stored["provider"] == "local"

        content = client.get(f"/v1/files/{stored['file_id']}")
        assert content.status_code == 200
        assert content.json()["content"] == "const a=1;"
        assert content.json()["from_cache"] is False

    def test_metadata_defaults_and_json_extra(self, client):
        response = upload(client, ("a.py", b"x = 1"), metadata='{"ticket": "ABC-1"}')
        file_id = response.json()["files"][0]["file_id"]

        meta = client.get(f"/v1/files/{file_id}/metadata").json()

        assert meta["metadata"]["user_id"] == "anonymous"
        assert meta["metadata"]["file_type"] == "code"
        assert meta["metadata"]["purpose"] == "review"
        assert meta["metadata"]["ticket"] == "ABC-1"
        assert meta["metadata"]["mime_type"] == "text/plain"

    def test_rejects_extension(self, client):
        response = upload(client, ("notes.txt", b"hello"))
        assert response.status_code == 400
        assert "File type not allowed" in response.json()["detail"]

    def test_rejects_too_many_files(self, client):
        response = upload(client, ("a.js", b"1"), ("b.js", b"2"), ("c.js", b"3"))
        assert response.status_code == 400
        assert "Too many files" in response.json()["detail"]

    def test_rejects_oversize_file(self, client):
        response = upload(client, ("big.js", b"x" * 1025))
        assert response.status_code == 413

    def test_rejects_bad_metadata_json(self, client):
        response = upload(client, ("a.js", b"1"), metadata="{not json")
        assert response.status_code == 400

    def test_rejects_unknown_purpose(self, client):
        response = upload(client, ("a.js", b"1"), metadata='{"purpose": "deploy"}')
        assert response.status_code == 400

    def test_unknown_provider_is_404(self, client):
        response = client.post(
            "/v1/files/upload?provider=dropbox",
            files=[("codeFiles", ("a.js", b"1", "text/plain"))],
        )
        assert response.status_code == 404
        assert response.json()["available"] == ["local"]

    def test_old_files_field_is_rejected(self, client):
        response = client.post("/v1/files/upload", files=[("files", ("a.js", b"1", "text/plain"))])
        assert response.status_code == 422


class TestReadUpload:
    """Test per-file validation in the upload layer."""

    @pytest.mark.asyncio
    async def test_declared_size_is_rejected_before_reading(self):
        settings = Settings(_env_file=None, MAX_FILE_SIZE_BYTES=1024)
        body = io.BytesIO(b"x" * 16)
        upload_file = UploadFile(file=body, filename="big.js", size=4096)

        with pytest.raises(HTTPException) as exc_info:
            await _read_upload(upload_file, settings)

        assert exc_info.value.status_code == 413
        assert body.tell() == 0

    @pytest.mark.asyncio
    async def test_buffered_size_is_checked_when_undeclared(self):
        settings = Settings(_env_file=None, MAX_FILE_SIZE_BYTES=8)
        upload_file = UploadFile(file=io.BytesIO(b"x" * 16), filename="big.js")

        with pytest.raises(HTTPException) as exc_info:
            await _read_upload(upload_file, settings)

        assert exc_info.value.status_code == 413


class TestFileEndpoints:
    """Test retrieval, existence, download and delete."""

    @pytest.fixture
    def file_id(self, client):
        return upload(client, ("a.js", b"let a = 1;")).json()["files"][0]["file_id"]

    def test_download_returns_raw_bytes(self, client, file_id):
        response = client.get(f"/v1/files/{file_id}/download")
        assert response.status_code == 200
        assert response.content == b"let a = 1;"
        assert response.headers["X-Storage-Provider"] == "local"

    def test_exists_then_delete(self, client, file_id):
        assert client.get(f"/v1/files/{file_id}/exists").json()["exists"] is True

        deleted = client.delete(f"/v1/files/{file_id}")
        assert deleted.status_code == 200
        assert deleted.json()["success"] is True
        assert deleted.json()["provider"] == "local"

        assert client.get(f"/v1/files/{file_id}/exists").json()["exists"] is False

    def test_missing_file_is_404_with_provider(self, client):
        response = client.get("/v1/files/" + "0" * 32)
        assert response.status_code == 404
        assert response.json()["provider"] == "local"
        assert response.json()["operation"] == "retrieve"

    def test_missing_metadata_is_404(self, client):
        response = client.get("/v1/files/nope/metadata")
        assert response.status_code == 404

    def test_batch_drops_failures(self, client, file_id):
        response = client.post("/v1/files/batch", json={"file_ids": [file_id, "missing"]})

        data = response.json()
        assert response.status_code == 200
        assert data["total"] == 1
        assert data["files"][0]["file_id"] == file_id
        assert "errors" not in data

    def test_batch_reports_errors_on_request(self, client, file_id):
        response = client.post(
            "/v1/files/batch",
            json={"file_ids": [file_id, "missing"], "include_errors": True},
        )
        assert response.json()["errors"] == [
            {"file_id": "missing", "error": "File not found in local: missing"},
        ]


class TestStorageEndpoints:
    """Test provider listing, health and switch."""

    def test_providers(self, client):
        data = client.get("/v1/storage/providers").json()
        assert data == {"providers": ["local"], "default_provider": "local"}

    def test_health(self, client):
        data = client.get("/v1/storage/health").json()
        assert data["provider"] == "local"
        assert data["status"] == "healthy"
        assert data["latency_ms"] >= 0

    def test_health_unknown_provider(self, client):
        response = client.get("/v1/storage/health?provider=gridfs")
        assert response.status_code == 404

    def test_switch(self, client):
        response = client.post("/v1/storage/switch", json={"provider": "local"})
        assert response.json() == {"switched": True, "provider": "local"}

    def test_switch_unknown(self, client):
        response = client.post("/v1/storage/switch", json={"provider": "dropbox"})
        assert response.status_code == 404
        assert "dropbox" in response.json()["detail"]
