"""Unit tests for auth_service: password hashing, JWT creation/validation."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import jwt as pyjwt
import pytest

from backend.auth_service.services.auth_service import (
    ACCESS_TOKEN_EXPIRY_HOURS,
    EXTERNAL_JWT_AUDIENCE,
    EXTERNAL_JWT_SECRET,
    JWT_ALGORITHM,
    JWT_SECRET,
    BCRYPT_MAX_PASSWORD_BYTES,
    OAUTH_PASSWORD_SENTINEL,
    REFRESH_TOKEN_EXPIRY_DAYS,
    create_access_token,
    create_refresh_token,
    decode_external_token,
    decode_token,
    dummy_password_hash,
    hash_password,
    is_refresh_claims,
    verify_password,
)


def _account(**overrides):
    fields = dict(id=uuid4(), email="a@b.com", role="renter", is_admin=False)
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPasswordHashing:

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("SecurePass123")
        assert hashed != "SecurePass123"

    def test_hash_is_bcrypt_format(self):
        hashed = hash_password("SecurePass123")
        assert hashed.startswith("$2b$")

    def test_hashes_are_salted(self):
        assert hash_password("SecurePass123") != hash_password("SecurePass123")

    def test_verify_correct_password(self):
        hashed = hash_password("SecurePass123")
        assert verify_password("SecurePass123", hashed) is True

    def test_verify_wrong_password(self):
        hashed = hash_password("SecurePass123")
        assert verify_password("WrongPassword1", hashed) is False

    def test_oauth_sentinel_never_verifies(self):
        assert verify_password(OAUTH_PASSWORD_SENTINEL, OAUTH_PASSWORD_SENTINEL) is False
        assert verify_password("anything", OAUTH_PASSWORD_SENTINEL) is False

    def test_garbage_hash_does_not_raise(self):
        assert verify_password("SecurePass123", "not-a-bcrypt-hash") is False
        assert verify_password("SecurePass123", "") is False

    def test_overlong_password_refused_by_hash(self):
        with pytest.raises(ValueError):
            hash_password("Aa1" + "x" * 80)

    def test_overlong_password_never_verifies(self):
        # Same first 72 bytes as the stored password
        stored = "Aa1" + "x" * (BCRYPT_MAX_PASSWORD_BYTES - 3)
        hashed = hash_password(stored)
        assert verify_password(stored, hashed) is True
        assert verify_password(stored + "extra", hashed) is False

    def test_dummy_hash_is_real_bcrypt(self):
        assert dummy_password_hash().startswith("$2b$")
        assert dummy_password_hash() is dummy_password_hash()
        assert verify_password("SecurePass123", dummy_password_hash()) is False


class TestAccessToken:

    def test_claims_round_trip(self):
        account = _account(role="owner", is_admin=True)
        claims = decode_token(create_access_token(account))
        assert claims["id"] == str(account.id)
        assert claims["email"] == "a@b.com"
        assert claims["role"] == "owner"
        assert claims["isAdmin"] is True
        assert "type" not in claims

    def test_token_has_24_hour_expiry(self):
        claims = decode_token(create_access_token(_account()))
        assert claims["exp"] - claims["iat"] == ACCESS_TOKEN_EXPIRY_HOURS * 3600 == 24 * 3600

    def test_valid_just_before_expiry(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=ACCESS_TOKEN_EXPIRY_HOURS) + timedelta(seconds=2)
        assert decode_token(create_access_token(_account(), now=issued)) is not None

    def test_rejected_at_exact_expiry(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=ACCESS_TOKEN_EXPIRY_HOURS)
        assert decode_token(create_access_token(_account(), now=issued)) is None

    def test_rejected_one_second_after_expiry(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=ACCESS_TOKEN_EXPIRY_HOURS) - timedelta(seconds=1)
        assert decode_token(create_access_token(_account(), now=issued)) is None

    def test_tampered_token_rejected(self):
        token = create_access_token(_account())
        header, payload, signature = token.split(".")
        forged = pyjwt.encode(
            {"id": str(uuid4()), "isAdmin": True, "iat": 0, "exp": 4102444800},
            "some-other-secret", algorithm=JWT_ALGORITHM,
        ).split(".")[1]
        assert decode_token(f"{header}.{forged}.{signature}") is None

    def test_wrong_secret_rejected(self):
        now = datetime.now(timezone.utc)
        token = pyjwt.encode(
            {"id": "x", "iat": now, "exp": now + timedelta(hours=1)},
            "not-the-server-secret", algorithm=JWT_ALGORITHM,
        )
        assert decode_token(token) is None

    @pytest.mark.parametrize("garbage", ["", "garbage.token.here", "abc"])
    def test_malformed_token_rejected(self, garbage):
        assert decode_token(garbage) is None


class TestRefreshToken:

    def test_refresh_claims(self):
        account = _account()
        claims = decode_token(create_refresh_token(account))
        assert claims["id"] == str(account.id)
        assert claims["type"] == "refresh"
        assert "email" not in claims
        assert is_refresh_claims(claims)

    def test_refresh_window_is_30_days(self):
        claims = decode_token(create_refresh_token(_account()))
        assert claims["exp"] - claims["iat"] == REFRESH_TOKEN_EXPIRY_DAYS * 86400 == 30 * 86400

    def test_access_claims_are_not_refresh(self):
        assert is_refresh_claims(decode_token(create_access_token(_account()))) is False
        assert is_refresh_claims(None) is False


class TestExternalToken:

    def _external(self, secret=EXTERNAL_JWT_SECRET, audience=EXTERNAL_JWT_AUDIENCE):
        now = datetime.now(timezone.utc)
        return pyjwt.encode(
            {"sub": "provider-123", "email": "g@example.com", "aud": audience,
             "iat": now, "exp": now + timedelta(hours=1)},
            secret, algorithm=JWT_ALGORITHM,
        )

    def test_valid_external_token(self):
        claims = decode_external_token(self._external())
        assert claims["email"] == "g@example.com"

    def test_wrong_audience_rejected(self):
        assert decode_external_token(self._external(audience="anon")) is None

    def test_own_secret_not_accepted_as_external(self):
        assert decode_external_token(self._external(secret=JWT_SECRET)) is None

    def test_external_token_not_accepted_as_own(self):
        assert decode_token(self._external()) is None
