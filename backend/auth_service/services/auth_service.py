"""Authentication service: password hashing and JWT management.

Access and refresh tokens are stateless HS256 JWTs signed with one process-wide
secret. Rotating the secret invalidates every outstanding token.
"""

import functools
import logging
import os
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

logger = logging.getLogger(__name__)


def _load_jwt_secret() -> str:
    """Load JWT secret from file (preferred) or env var."""
    secret_file = os.environ.get("JWT_SECRET_FILE", "/secrets/jwt-secret")
    if os.path.isfile(secret_file):
        with open(secret_file) as f:
            return f.read().strip()
    return os.environ.get("JWT_SECRET", "change-this-in-production")


JWT_SECRET = _load_jwt_secret()
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRY_HOURS = int(os.environ.get("ACCESS_TOKEN_EXPIRY_HOURS", "24"))
REFRESH_TOKEN_EXPIRY_DAYS = int(os.environ.get("REFRESH_TOKEN_EXPIRY_DAYS", "30"))
REFRESH_TOKEN_TYPE = "refresh"

BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

# Stored instead of a hash for accounts created through an external identity
# provider. Not a bcrypt string, so verify_password always fails for them.
OAUTH_PASSWORD_SENTINEL = "EXTERNAL_OAUTH"

EXTERNAL_JWT_SECRET = os.environ.get("EXTERNAL_JWT_SECRET")
EXTERNAL_JWT_AUDIENCE = os.environ.get("EXTERNAL_JWT_AUDIENCE", "authenticated")


# --- Passwords ---

# Inputs past this are refused by hash and verify alike
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"password longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash or password_hash == OAUTH_PASSWORD_SENTINEL:
        return False
    if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Not a bcrypt hash (corrupt row or foreign marker)
        return False


@functools.lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """A real hash at the configured cost, checked against when no account matches."""
    return hash_password("no-such-account")


# --- Tokens ---

def create_access_token(user, now: datetime | None = None) -> str:
    """Sign an access token carrying id, email, role and admin flag."""
    now = now or datetime.now(timezone.utc)
    payload = {
        "id": str(user.id),
        "email": user.email,
        "role": user.role,
        "isAdmin": bool(user.is_admin),
        "iat": now,
        "exp": now + timedelta(hours=ACCESS_TOKEN_EXPIRY_HOURS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_refresh_token(user, now: datetime | None = None) -> str:
    """Sign a refresh token. Only good for minting new access tokens."""
    now = now or datetime.now(timezone.utc)
    payload = {
        "id": str(user.id),
        "type": REFRESH_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(days=REFRESH_TOKEN_EXPIRY_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Return verified claims, or None for malformed, tampered or expired tokens."""
    try:
        return jwt.decode(
            token, JWT_SECRET, algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.InvalidTokenError:
        return None


def is_refresh_claims(claims: dict | None) -> bool:
    return claims is not None and claims.get("type") == REFRESH_TOKEN_TYPE


def decode_external_token(token: str) -> dict | None:
    """Verify a token minted by the external identity provider.

    Disabled (always None) unless EXTERNAL_JWT_SECRET is configured.
    """
    if not EXTERNAL_JWT_SECRET:
        return None
    try:
        return jwt.decode(
            token, EXTERNAL_JWT_SECRET, algorithms=[JWT_ALGORITHM],
            audience=EXTERNAL_JWT_AUDIENCE,
        )
    except jwt.InvalidTokenError:
        return None
