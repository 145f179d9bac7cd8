# app/routers/storage.py
"""
Storage provider endpoints.

GET  /v1/storage/providers  - Registered providers and the default
GET  /v1/storage/health     - Liveness probe for one provider
POST /v1/storage/switch     - Validate that a provider can be used
"""

from fastapi import APIRouter, Depends, Query

from app.schemas.files import (
    HealthCheckResponse,
    ProviderListResponse,
    SwitchProviderRequest,
    SwitchProviderResponse,
)
from app.services.file_storage import FileStorageService, get_file_storage_service

router = APIRouter(prefix="/v1/storage", tags=["storage"])


@router.get("/providers", response_model=ProviderListResponse)
def list_providers(
    service: FileStorageService = Depends(get_file_storage_service),
) -> ProviderListResponse:
    return ProviderListResponse(
        providers=service.list_providers(),
        default_provider=service.factory.default_provider,
    )


@router.get("/health", response_model=HealthCheckResponse)
async def storage_health(
    provider: str | None = Query(None),
    service: FileStorageService = Depends(get_file_storage_service),
) -> HealthCheckResponse:
    """Report healthy/unhealthy with latency. Always 200 for known providers."""
    result = await service.health_check(provider)
    return HealthCheckResponse.model_validate(result, from_attributes=True)


@router.post("/switch", response_model=SwitchProviderResponse)
def switch_provider(
    request: SwitchProviderRequest,
    service: FileStorageService = Depends(get_file_storage_service),
) -> SwitchProviderResponse:
    """
    Validate a provider name.

    This does not change the default provider; pass ?provider= on file
    endpoints to use a non-default backend.
    """
    return SwitchProviderResponse(**service.switch_provider(request.provider))
