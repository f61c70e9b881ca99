"""
Unit tests for security utilities.
"""
import asyncio
import logging
import time

import pytest
from jose import jwt

from healthinfo.core.config import Settings, parse_duration
from healthinfo.core.security import (
    generate_access_token,
    generate_refresh_token,
    get_token_from_request,
    hash_password,
    issue_token_pair,
    verify_password,
    verify_token_for_middleware,
    verify_token_server_side,
)
from healthinfo.schemas.auth import TokenPayload

USER_ID = "0b6f9c1e-4b7a-4f4e-9f61-2d7a3c1e8a55"


def verify_both(token: str, settings: Settings):
    """Run a token through both verification paths."""
    return (
        verify_token_server_side(token, settings),
        asyncio.run(verify_token_for_middleware(token, settings)),
    )


def sign(claims: dict, settings: Settings, secret: str = None, algorithm: str = None) -> str:
    return jwt.encode(
        claims,
        secret or settings.JWT_SECRET_KEY,
        algorithm=algorithm or settings.JWT_ALGORITHM,
    )


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password(self):
        """Test that password hashing produces a hash."""
        password = "mysecretpassword"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2b$10$")  # bcrypt, cost factor 10

    def test_hash_password_different_each_time(self):
        """Test that hashing same password produces different hashes."""
        password = "mysecretpassword"
        hash1 = hash_password(password)
        hash2 = hash_password(password)

        assert hash1 != hash2  # Different salts

    def test_verify_password_correct(self):
        password = "mysecretpassword"
        hashed = hash_password(password)

        assert verify_password(password, hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("mysecretpassword")

        assert verify_password("wrongpassword", hashed) is False

    def test_verify_password_malformed_hash(self):
        """A corrupt stored hash verifies as false instead of raising."""
        assert verify_password("mysecretpassword", "not-a-bcrypt-hash") is False


class TestDurations:
    """Tests for token lifetime parsing."""

    @pytest.mark.parametrize("value,seconds", [
        ("30s", 30),
        ("15m", 900),
        ("1h", 3600),
        ("7d", 604800),
    ])
    def test_parse_duration(self, value: str, seconds: int):
        assert parse_duration(value) == seconds

    @pytest.mark.parametrize("value", ["", "15", "m", "1w", "-1m", "1.5h", "15 minutes"])
    def test_parse_duration_invalid(self, value: str):
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_malformed_setting_falls_back_with_warning(self, settings: Settings, caplog):
        """A bad lifetime string falls back to the default instead of failing issuance."""
        bad = settings.model_copy(update={
            "JWT_ACCESS_TOKEN_EXPIRES_IN": "fifteen",
            "JWT_REFRESH_TOKEN_EXPIRES_IN": "1w",
        })

        with caplog.at_level(logging.WARNING):
            assert bad.access_token_expires_seconds == 15 * 60
            assert bad.refresh_token_expires_seconds == 7 * 24 * 60 * 60

        assert "JWT_ACCESS_TOKEN_EXPIRES_IN" in caplog.text
        assert generate_access_token(USER_ID, bad)


class TestTokenIssuance:
    """Tests for JWT creation."""

    def test_access_token_claims(self, settings: Settings):
        token = generate_access_token(TokenPayload(user_id=USER_ID), settings)
        claims = jwt.get_unverified_claims(token)

        assert claims["userId"] == USER_ID
        assert claims["exp"] - claims["iat"] == settings.access_token_expires_seconds
        assert claims["jti"]

    def test_refresh_token_lifetime(self, settings: Settings):
        token = generate_refresh_token({"userId": USER_ID}, settings)
        claims = jwt.get_unverified_claims(token)

        assert claims["exp"] - claims["iat"] == settings.refresh_token_expires_seconds

    def test_tokens_issued_together_are_distinct(self, settings: Settings):
        """Tokens for the same user in the same second still differ."""
        tokens = {generate_refresh_token(USER_ID, settings) for _ in range(5)}

        assert len(tokens) == 5

    def test_payload_without_user_id(self, settings: Settings):
        """A claims mapping with no user id is refused instead of signed for "None"."""
        with pytest.raises(ValueError):
            generate_access_token({"email": "someone@example.com"}, settings)

    def test_issue_token_pair(self, settings: Settings):
        pair = issue_token_pair(USER_ID, settings)

        assert pair.access_token != pair.refresh_token
        assert verify_token_server_side(pair.access_token, settings).user_id == USER_ID
        assert verify_token_server_side(pair.refresh_token, settings).user_id == USER_ID


class TestVerificationParity:
    """Both verification paths accept and reject exactly the same tokens."""

    def test_valid_token(self, settings: Settings):
        server, middleware = verify_both(generate_access_token(USER_ID, settings), settings)

        assert server == TokenPayload(user_id=USER_ID)
        assert middleware == TokenPayload(user_id=USER_ID)

    def test_expired_token(self, settings: Settings):
        now = int(time.time())
        token = sign({"userId": USER_ID, "iat": now - 120, "exp": now - 60}, settings)

        assert verify_both(token, settings) == (None, None)

    def test_expiry_boundary(self, settings: Settings):
        """A token whose exp is the current second is rejected on both paths."""
        now = int(time.time())
        token = sign({"userId": USER_ID, "iat": now - 60, "exp": now}, settings)

        assert verify_both(token, settings) == (None, None)

    def test_wrong_secret(self, settings: Settings):
        now = int(time.time())
        token = sign(
            {"userId": USER_ID, "iat": now, "exp": now + 60},
            settings,
            secret="some-other-secret-key-that-is-long-enough-123",
        )

        assert verify_both(token, settings) == (None, None)

    def test_other_algorithm(self, settings: Settings):
        now = int(time.time())
        token = sign({"userId": USER_ID, "iat": now, "exp": now + 60}, settings, algorithm="HS512")

        assert verify_both(token, settings) == (None, None)

    @pytest.mark.parametrize("claims", [
        {"iat": 0, "exp": 60},
        {"userId": "", "iat": 0, "exp": 60},
        {"userId": 42, "iat": 0, "exp": 60},
        {"userId": USER_ID, "exp": 60},
        {"userId": USER_ID, "iat": 0},
    ])
    def test_missing_or_bad_claims(self, settings: Settings, claims: dict):
        now = int(time.time())
        shifted = {k: (now + v if k in ("iat", "exp") else v) for k, v in claims.items()}

        assert verify_both(sign(shifted, settings), settings) == (None, None)

    def test_issued_in_future(self, settings: Settings):
        now = int(time.time())
        token = sign({"userId": USER_ID, "iat": now + 3600, "exp": now + 7200}, settings)

        assert verify_both(token, settings) == (None, None)

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_garbage(self, settings: Settings, token: str):
        assert verify_both(token, settings) == (None, None)

    def test_tampered_payload(self, settings: Settings):
        header, payload, signature = generate_access_token(USER_ID, settings).split(".")
        forged = sign({"userId": "someone-else", "iat": 0, "exp": 0}, settings).split(".")[1]

        assert verify_both(f"{header}.{forged}.{signature}", settings) == (None, None)


class TestTokenFromRequest:
    """Tests for bearer token extraction."""

    def test_bearer_token(self):
        assert get_token_from_request({"Authorization": "Bearer abc.def.ghi"}) == "abc.def.ghi"

    def test_lowercase_header_and_scheme(self):
        assert get_token_from_request({"authorization": "bearer abc"}) == "abc"

    def test_missing_header(self):
        assert get_token_from_request({}) is None

    @pytest.mark.parametrize("value", ["Token abc", "Bearer", "Bearer a b", "abc"])
    def test_malformed_header(self, value: str, caplog):
        with caplog.at_level(logging.WARNING):
            assert get_token_from_request({"Authorization": value}) is None

        assert "Malformed Authorization header" in caplog.text
