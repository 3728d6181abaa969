"""Unit tests for JWT token generation and validation

Tests cover:
- Token creation with the expected claims
- Expiry handling
- Tampered and foreign-secret tokens
- Missing JWT_SECRET
"""

import time
from uuid import uuid4

import jwt
import pytest

from docuflow.auth.jwt import ALGORITHM, create_access_token, decode_token, get_jwt_expiry_minutes


class TestCreateAccessToken:

    def test_token_contains_claims(self):
        user_id, org_id = uuid4(), uuid4()
        token = create_access_token(user_id=user_id, org_id=org_id, role="admin", email="admin@test.com")

        payload = jwt.decode(token, options={"verify_signature": False})
        assert payload["sub"] == str(user_id)
        assert payload["org_id"] == str(org_id)
        assert payload["role"] == "admin"
        assert payload["email"] == "admin@test.com"
        assert payload["exp"] > payload["iat"]

    def test_expiry_follows_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_EXPIRY_MINUTES", "5")
        token = create_access_token(uuid4(), uuid4(), "member", "m@test.com")
        payload = decode_token(token)
        assert payload["exp"] - payload["iat"] == 300

    def test_invalid_expiry_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("JWT_EXPIRY_MINUTES", "soon")
        assert get_jwt_expiry_minutes() == 60

    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(ValueError, match="JWT_SECRET"):
            create_access_token(uuid4(), uuid4(), "member", "m@test.com")


class TestDecodeToken:

    def test_round_trip(self):
        user_id = uuid4()
        payload = decode_token(create_access_token(user_id, uuid4(), "owner", "o@test.com"))
        assert payload["sub"] == str(user_id)

    def test_expired_token(self, monkeypatch):
        secret = "test-jwt-secret-key-256-bits-minimum-length-required-for-security"
        monkeypatch.setenv("JWT_SECRET", secret)
        now = int(time.time())
        token = jwt.encode({"sub": str(uuid4()), "iat": now - 120, "exp": now - 60}, secret, algorithm=ALGORITHM)
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_foreign_secret_rejected(self):
        token = jwt.encode({"sub": str(uuid4()), "exp": int(time.time()) + 60}, "another-secret", algorithm=ALGORITHM)
        with pytest.raises(jwt.InvalidSignatureError):
            decode_token(token)

    def test_tampered_token_rejected(self):
        token = create_access_token(uuid4(), uuid4(), "member", "m@test.com")
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload[:-2] + ("AA" if payload[-2:] != "AA" else "BB"), signature])
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(tampered)

    def test_none_algorithm_rejected(self):
        token = jwt.encode({"sub": str(uuid4())}, key=None, algorithm="none")
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token)
