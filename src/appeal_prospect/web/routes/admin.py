"""Privileged routes: operator settings and provider API keys."""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends

from appeal_prospect.auth import Session
from appeal_prospect.core.secret_settings import SecretSettings

from ..dependencies import get_secret_settings, require_privileged, verify_csrf
from ..schemas import (
    AUTH_ERROR_RESPONSES,
    ApiKeyStatus,
    ApiKeyUpdate,
    ErrorDetail,
    SettingItem,
    SettingsListResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], responses=AUTH_ERROR_RESPONSES)

Provider = Literal["openai", "perplexity"]


@router.get("/ping", summary="Privileged liveness check")
async def ping(session: Session = Depends(require_privileged)) -> dict:
    """Confirm the caller holds a privileged session."""
    return {"status": "ok", "subject_id": session.subject_id}


@router.get(
    "/settings",
    response_model=SettingsListResponse,
    summary="List settings",
)
async def list_settings(
    session: Session = Depends(require_privileged),
    secret_settings: SecretSettings = Depends(get_secret_settings),
) -> SettingsListResponse:
    """List stored settings. Encrypted values are masked."""
    return SettingsListResponse(
        items=[SettingItem(**r.model_dump()) for r in secret_settings.list_settings()]
    )


@router.get(
    "/settings/api-keys/{provider}",
    response_model=ApiKeyStatus,
    summary="API key status",
)
async def get_api_key_status(
    provider: Provider,
    session: Session = Depends(require_privileged),
    secret_settings: SecretSettings = Depends(get_secret_settings),
) -> ApiKeyStatus:
    """Report whether a provider has an API key configured."""
    return ApiKeyStatus(provider=provider, configured=secret_settings.is_configured(provider))


@router.put(
    "/settings/api-keys/{provider}",
    response_model=ApiKeyStatus,
    summary="Store a provider API key",
    dependencies=[Depends(verify_csrf)],
    responses={400: {"model": ErrorDetail, "description": "Key rejected by format policy"}},
)
async def set_api_key(
    provider: Provider,
    update: ApiKeyUpdate,
    session: Session = Depends(require_privileged),
    secret_settings: SecretSettings = Depends(get_secret_settings),
) -> ApiKeyStatus:
    """Validate a provider API key and store it encrypted."""
    secret_settings.set_api_key(provider, update.api_key)
    logger.info("api_key_updated", provider=provider, subject_id=session.subject_id)
    return ApiKeyStatus(provider=provider, configured=True)
