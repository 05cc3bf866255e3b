"""
App routes — registration, status, discovery, and delegation start.

Route prefix: /api/v1/apps
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from api.dependencies import get_delegation_service
from api.schemas import AppCreateRequest, AppResponse, AuthCodeURLResponse
from database.models import App
from delegation.service import DelegationService

router = APIRouter(tags=["apps"])


@router.post(
    "/{service}",
    response_model=AppResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_app(
    service: str,
    req: AppCreateRequest,
    delegation: DelegationService = Depends(get_delegation_service),
) -> App:
    """Register an OAuth2 client for ``service``."""
    app = App(
        id=req.id,
        service=service,
        password=req.password,
        callback_url=req.callback_url,
        expiry=req.expiry,
        status=req.status.value,
    )
    return await delegation.register_app(app)


@router.patch("/{app_id}/status/{app_status}", response_model=AppResponse)
async def set_status(
    app_id: str,
    app_status: str,
    delegation: DelegationService = Depends(get_delegation_service),
) -> App:
    """Enable or disable an app."""
    return await delegation.set_app_status(app_id, app_status)


@router.get("/{service}", response_model=AppResponse)
async def get_app(
    service: str,
    delegation: DelegationService = Depends(get_delegation_service),
) -> App:
    """Return the app currently serving ``service``."""
    return await delegation.get_app(service)


@router.get("/{service}/{user_id}", response_model=AuthCodeURLResponse)
async def auth_code_url(
    service: str,
    user_id: int,
    delegation: DelegationService = Depends(get_delegation_service),
) -> AuthCodeURLResponse:
    """
    Start delegation for ``user_id``.

    The returned URL points at the provider's consent page; its ``state``
    parameter is what the provider hands back to ``GET /tokens``.
    """
    url = await delegation.start_delegation(service, user_id)
    return AuthCodeURLResponse(url=url)
