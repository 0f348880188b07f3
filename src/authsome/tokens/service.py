"""Stateless minting and parsing of short-lived access tokens (JWT)."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from authsome.common.config import AuthsomeSettings
from authsome.common.exceptions import InvalidAccessTokenError

logger = logging.getLogger(__name__)

_REGISTERED_CLAIMS = frozenset({"sub", "iss", "iat", "exp", "nbf", "aud", "jti"})


@dataclass
class ParsedToken:
    subject: str
    issuer: Optional[str]
    issued_at: datetime
    expired: bool
    claims: dict[str, Any] = field(default_factory=dict)


class AccessTokenService:
    """Signs access tokens with the configured HMAC secret."""

    def __init__(self, settings: AuthsomeSettings):
        self.settings = settings

    def mint(
        self,
        subject: str,
        claims: dict[str, Any] | None = None,
        issuer: str | None = None,
        ttl_seconds: int | None = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        ttl = self.settings.access_token_ttl if ttl_seconds is None else ttl_seconds
        payload: dict[str, Any] = dict(claims or {})
        payload.update(
            {
                "sub": subject,
                "iss": issuer or self.settings.access_token_issuer,
                "iat": now,
                "exp": now + timedelta(seconds=ttl),
            }
        )
        return jwt.encode(
            payload,
            self.settings.secret_key,
            algorithm=self.settings.access_token_algorithm,
        )

    def parse(self, token: str) -> ParsedToken:
        """Verify the signature and decode. Expiry is reported, not raised."""
        try:
            payload = jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.access_token_algorithm],
                options={"verify_exp": False, "require": ["sub", "iat", "exp"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Rejected access token: %s", exc)
            raise InvalidAccessTokenError() from exc

        now = datetime.now(timezone.utc).timestamp()
        return ParsedToken(
            subject=payload["sub"],
            issuer=payload.get("iss"),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expired=payload["exp"] <= now,
            claims={k: v for k, v in payload.items() if k not in _REGISTERED_CLAIMS},
        )
