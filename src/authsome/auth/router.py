"""Tenant signup, sign-in and session API router."""

import logging

from fastapi import APIRouter, Body, Depends, Header

from authsome.auth.schemas import (
    ApiKeyCreated,
    ApiKeySummary,
    RefreshTokenRequest,
    SignInRequest,
    SignupCompleted,
    SignupRequest,
    TenantProfile,
    TokenPair,
)
from authsome.common.logging import token_hint
from authsome.common.schemas import ResponseModel
from authsome.common.security import TenantContext, require_tenant

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_signup_service():
    from authsome.deps import get_signup_service
    return get_signup_service()


def _get_auth_service():
    from authsome.deps import get_auth_service
    return get_auth_service()


# ── Signup ──

@router.post("/signup", response_model=ResponseModel[str], status_code=201)
async def signup(body: SignupRequest):
    svc = _get_signup_service()
    token = await svc.start_signup(
        body.identity_type, body.identity, body.username, body.password
    )
    logger.debug("Issued signup token %s", token_hint(token))
    return ResponseModel[str].of(token)


@router.put("/signup/{otp}", response_model=ResponseModel[SignupCompleted])
async def verify_signup(otp: str, signup_token: str = Header(..., alias="Signup-Token")):
    svc = _get_signup_service()
    tenant = await svc.complete_signup(signup_token, otp)
    return ResponseModel[SignupCompleted].of(SignupCompleted(tenant_id=tenant.id))


# ── Sessions ──

@router.post("/sign-in/password", response_model=ResponseModel[TokenPair])
async def sign_in(body: SignInRequest):
    svc = _get_auth_service()
    tokens = await svc.sign_in_with_password(body.identity_type, body.identity, body.password)
    return ResponseModel[TokenPair].of(tokens)


@router.put("/refresh-token", response_model=ResponseModel[TokenPair])
async def refresh_token(body: RefreshTokenRequest):
    svc = _get_auth_service()
    tokens = await svc.refresh_token(body.refresh_token)
    return ResponseModel[TokenPair].of(tokens)


@router.delete("/revoke-refresh-token", response_model=ResponseModel)
async def revoke_refresh_token(body: RefreshTokenRequest = Body(...)):
    svc = _get_auth_service()
    await svc.revoke_refresh_token(body.refresh_token)
    return ResponseModel.of(None)


# ── Authenticated tenant ──

@router.get("/me", response_model=ResponseModel[TenantProfile])
async def me(ctx: TenantContext = Depends(require_tenant)):
    svc = _get_auth_service()
    profile = await svc.get_profile(ctx.tenant_id)
    return ResponseModel[TenantProfile].of(profile)


@router.post("/api-keys", response_model=ResponseModel[ApiKeyCreated], status_code=201)
async def create_api_key(ctx: TenantContext = Depends(require_tenant)):
    svc = _get_auth_service()
    created = await svc.issue_api_key(ctx.tenant_id)
    return ResponseModel[ApiKeyCreated].of(created)


@router.get("/api-keys", response_model=ResponseModel[list[ApiKeySummary]])
async def list_api_keys(ctx: TenantContext = Depends(require_tenant)):
    svc = _get_auth_service()
    keys = await svc.list_api_keys(ctx.tenant_id)
    return ResponseModel[list[ApiKeySummary]].of(
        [ApiKeySummary.model_validate(k) for k in keys]
    )


@router.delete("/api-keys/{key_id}", response_model=ResponseModel)
async def revoke_api_key(key_id: str, ctx: TenantContext = Depends(require_tenant)):
    svc = _get_auth_service()
    await svc.revoke_api_key(ctx.tenant_id, key_id)
    return ResponseModel.of(None)
