"""Bearer-token authentication: request authenticator and FastAPI dependencies."""

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from backend.auth_service.services.auth_service import decode_token, is_refresh_claims

logger = logging.getLogger(__name__)

NO_TOKEN = "No token provided"
INVALID_TOKEN = "Invalid or expired token"
ACCESS_DENIED = "Access denied"


@dataclass(frozen=True)
class Identity:
    """Who is calling, as asserted by a verified access token."""

    id: str
    email: str | None
    role: str | None
    is_admin: bool

    @classmethod
    def from_claims(cls, claims: dict) -> "Identity":
        return cls(
            id=claims["id"],
            email=claims.get("email"),
            role=claims.get("role"),
            is_admin=claims.get("isAdmin") is True,
        )


@dataclass(frozen=True)
class AuthResult:
    authenticated: bool
    identity: Identity | None = None
    reason: str | None = None


def extract_token(auth_header: str | None) -> str | None:
    """Strip a case-sensitive "Bearer " prefix; any other value is the raw token."""
    if not auth_header:
        return None
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):]
    return auth_header


def authenticate(auth_header: str | None) -> AuthResult:
    token = extract_token(auth_header)
    if not token:
        return AuthResult(authenticated=False, reason=NO_TOKEN)

    claims = decode_token(token)
    # Refresh tokens never authorize resource requests
    if claims is None or is_refresh_claims(claims) or "id" not in claims:
        logger.info("[AUTH] rejected token_len=%d", len(token))
        return AuthResult(authenticated=False, reason=INVALID_TOKEN)

    return AuthResult(authenticated=True, identity=Identity.from_claims(claims))


def authenticate_request(request: Request) -> AuthResult:
    return authenticate(request.headers.get("Authorization"))


async def get_current_identity(request: Request) -> Identity:
    """FastAPI dependency: the verified caller, or 401."""
    result = authenticate_request(request)
    if not result.authenticated:
        raise HTTPException(status_code=401, detail=result.reason)
    return result.identity


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    """FastAPI dependency: like get_current_identity, plus 403 for non-admins."""
    if not identity.is_admin:
        logger.info("[AUTH] admin route denied for user=%s", identity.id)
        raise HTTPException(status_code=403, detail=ACCESS_DENIED)
    return identity
