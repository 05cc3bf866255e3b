"""
Request / response schemas for the apps and tokens routes.

Each request model carries its own normalisation config, so nothing is
registered process-wide.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from delegation.apps import AppStatus


class AppCreateRequest(BaseModel):
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    callback_url: str = Field(..., min_length=1, alias="callback_URL")
    expiry: Optional[datetime] = None
    status: AppStatus = AppStatus.ENABLE


class AppResponse(BaseModel):
    """App as exposed over HTTP; the client secret never leaves the service."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    service: str
    callback_url: str = Field(..., serialization_alias="callback_URL")
    expiry: Optional[datetime] = None
    created_at: Optional[datetime] = None
    status: str


class AuthCodeURLResponse(BaseModel):
    url: str


class DelegationCompleteResponse(BaseModel):
    user_id: int
    status: str = "connected"


class TokenResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    service: str
    token_type: str
    access_token: str
    refresh_token: str
    expiry: Optional[datetime] = None
    created_at: datetime
