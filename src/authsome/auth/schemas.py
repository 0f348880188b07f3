"""Pydantic schemas for signup, sign-in, token and API key endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from authsome.tenants.models import IdentityType


class SignupMetadata(BaseModel):
    """Payload stored on a pending-signup OTP record."""

    model_config = ConfigDict(extra="forbid")

    identity: str = Field(..., min_length=1)
    identity_type: IdentityType
    username: str = Field(..., min_length=1)
    encrypted_password: str = Field(..., min_length=1)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


# ── Requests ──

class SignupRequest(BaseModel):
    # Resolved to IdentityType by the service so unknown names get a typed error
    identity_type: str = Field(..., min_length=1, max_length=32)
    identity: str = Field(..., min_length=1, max_length=320)
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)


class SignInRequest(BaseModel):
    identity_type: str = Field(..., min_length=1, max_length=32)
    identity: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=256)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


# ── Responses ──

class SignupCompleted(BaseModel):
    tenant_id: str


class ApiKeyCreated(BaseModel):
    """Includes the raw API key; only returned once at creation time."""
    id: str
    api_key: str
    created_at: datetime


class ApiKeySummary(BaseModel):
    id: str
    key_prefix: str
    created_at: datetime

    model_config = {"from_attributes": True}


class IdentityResponse(BaseModel):
    identity_type: IdentityType
    identity: str


class TenantProfile(BaseModel):
    id: str
    username: str
    created_at: datetime
    identities: list[IdentityResponse] = []
    active_sessions: Optional[int] = None
