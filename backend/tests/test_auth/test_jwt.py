"""Unit tests for JWT token creation, decoding, and validation."""

from datetime import timedelta

import pytest
from jose import JWTError, jwt

from app.auth.jwt import (
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
)


class TestCreateAccessToken:
    """Test access token creation."""

    def test_contains_type_access(self):
        payload = decode_token(create_access_token({"sub": "user-123"}))
        assert payload["type"] == "access"

    def test_contains_sub_iat_and_exp(self):
        payload = decode_token(create_access_token({"sub": "user-abc"}))
        assert payload["sub"] == "user-abc"
        assert "iat" in payload
        assert "exp" in payload

    def test_custom_expiry_delta(self):
        payload = decode_token(create_access_token({"sub": "user-123"}, expires_delta=timedelta(hours=1)))
        assert payload["exp"] - payload["iat"] == 3600

    def test_does_not_mutate_input(self):
        data = {"sub": "user-123"}
        create_access_token(data)
        assert data == {"sub": "user-123"}


class TestCreateRefreshToken:
    def test_contains_type_refresh(self):
        payload = decode_token(create_refresh_token({"sub": "user-123"}))
        assert payload["type"] == "refresh"

    def test_outlives_access_token(self):
        access = decode_token(create_access_token({"sub": "user-123"}))
        refresh = decode_token(create_refresh_token({"sub": "user-123"}))
        assert refresh["exp"] > access["exp"]


class TestDecodeToken:
    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_token(token)

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"sub": "user-123", "type": "access"}, "some-other-secret", algorithm="HS256")
        with pytest.raises(JWTError):
            decode_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(JWTError):
            decode_token("not.a.jwt")


class TestCreateTokenPair:
    def test_carries_role(self):
        tokens = create_token_pair("user-123", "tenant")
        assert tokens["token_type"] == "bearer"
        access = decode_token(tokens["access_token"])
        refresh = decode_token(tokens["refresh_token"])
        assert access["role"] == "tenant"
        assert refresh["role"] == "tenant"
        assert access["type"] == "access"
        assert refresh["type"] == "refresh"
