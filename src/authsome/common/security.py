"""Caller authentication dependencies.

The authenticated tenant is resolved once per request and handed to the
handler as an explicit ``TenantContext``; nothing reads it from ambient state.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException


@dataclass
class TenantContext:
    """Resolved tenant info available to request handlers."""
    tenant_id: str
    username: str
    auth_method: str  # "access_token" or "api_key"


async def resolve_tenant(
    authorization: Optional[str] = Header(None),
    api_tenant: Optional[str] = Header(None, alias="API-Tenant"),
) -> Optional[TenantContext]:
    """Resolve the calling tenant from a bearer access token or an API key.

    Returns None when neither credential is present or valid.
    """
    from authsome.deps import get_auth_service

    svc = get_auth_service()
    if authorization and authorization.startswith("Bearer "):
        tenant = await svc.resolve_tenant_from_access_token(authorization[len("Bearer "):])
        if tenant is not None:
            return TenantContext(
                tenant_id=tenant.id, username=tenant.username, auth_method="access_token"
            )
    if api_tenant:
        tenant = await svc.resolve_tenant_from_api_key(api_tenant)
        if tenant is not None:
            return TenantContext(
                tenant_id=tenant.id, username=tenant.username, auth_method="api_key"
            )
    return None


async def require_tenant(
    authorization: Optional[str] = Header(None),
    api_tenant: Optional[str] = Header(None, alias="API-Tenant"),
) -> TenantContext:
    """FastAPI dependency that rejects unauthenticated callers with 401."""
    ctx = await resolve_tenant(authorization=authorization, api_tenant=api_tenant)
    if ctx is None:
        raise HTTPException(
            status_code=401,
            detail="Missing or invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx
