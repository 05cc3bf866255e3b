"""
Token routes — OAuth callback, token lookup, and refresh.

Route prefix: /api/v1/tokens
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_delegation_service
from api.schemas import DelegationCompleteResponse, TokenResponse
from database.models import Token
from delegation.service import DelegationService

router = APIRouter(tags=["tokens"])


@router.get(
    "",
    response_model=DelegationCompleteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def oauth_callback(
    code: str = Query(..., min_length=1),
    state: str = Query(..., min_length=1),
    delegation: DelegationService = Depends(get_delegation_service),
) -> DelegationCompleteResponse:
    """Provider redirect target: exchange ``code`` and store the token."""
    user_id = await delegation.complete_delegation(code, state)
    return DelegationCompleteResponse(user_id=user_id)


@router.get("/{user_id}/{service}", response_model=TokenResponse)
async def get_token(
    user_id: int,
    service: str,
    delegation: DelegationService = Depends(get_delegation_service),
) -> Token:
    return await delegation.fetch_token(user_id, service)


@router.put("/{user_id}/{service}", response_model=TokenResponse)
async def refresh_token(
    user_id: int,
    service: str,
    force: bool = Query(False, description="Refresh even if the token is still valid."),
    delegation: DelegationService = Depends(get_delegation_service),
) -> Token:
    """Rotate the stored token through the provider and return the new one."""
    return await delegation.refresh_token(user_id, service, force=force)
