"""Tests for password hashing and token issuance/verification."""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from src.config import get_settings
from src.exceptions import AuthError, InvalidTokenError
from src.services.auth import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    get_password_hash,
    sign_token,
    subject_id,
    verify_password,
    verify_token,
)


@pytest.fixture
def user():
    return SimpleNamespace(id=42, email="ana@example.com", username="ana", full_name="Ana A")


class TestPasswords:
    def test_hash_is_not_plaintext(self):
        hashed = get_password_hash("secret-pass")

        assert hashed != "secret-pass"
        assert verify_password("secret-pass", hashed)
        assert not verify_password("other-pass", hashed)

    def test_hashes_are_salted(self):
        assert get_password_hash("same") != get_password_hash("same")

    def test_candidate_longer_than_72_bytes_never_verifies(self):
        hashed = get_password_hash("a" * 72)

        assert verify_password("a" * 72, hashed)
        assert not verify_password("a" * 72 + "wrong!", hashed)

    def test_hashing_rejects_passwords_over_72_bytes(self):
        with pytest.raises(ValueError, match="72 bytes"):
            get_password_hash("é" * 37)


class TestTokens:
    def test_access_token_claims(self, user):
        claims = decode_access_token(create_access_token(user))

        assert claims["sub"] == "42"
        assert claims["type"] == "access"
        assert claims["username"] == "ana"
        assert claims["email"] == "ana@example.com"
        assert claims["full_name"] == "Ana A"

    def test_refresh_token_carries_only_the_id(self, user):
        claims = decode_refresh_token(create_refresh_token(user))

        assert claims["sub"] == "42"
        assert claims["type"] == "refresh"
        assert "email" not in claims
        assert "username" not in claims

    def test_tokens_are_unique(self, user):
        assert create_refresh_token(user) != create_refresh_token(user)

    def test_secrets_are_distinct(self, user):
        settings = get_settings()
        access = create_access_token(user)

        with pytest.raises(InvalidTokenError):
            verify_token(access, settings.refresh_token_secret)

    def test_wrong_type_is_rejected(self, user):
        settings = get_settings()
        refresh = sign_token(
            {"sub": "42", "type": "refresh"}, settings.access_token_secret, timedelta(minutes=5)
        )

        with pytest.raises(InvalidTokenError, match="type"):
            decode_access_token(refresh)

    def test_expired_token(self):
        token = sign_token({"sub": "1"}, "secret", timedelta(seconds=-10))

        with pytest.raises(InvalidTokenError, match="expired"):
            verify_token(token, "secret")

    def test_garbage_token(self):
        with pytest.raises(InvalidTokenError):
            verify_token("not.a.jwt", "secret")

    def test_invalid_token_error_is_an_auth_error(self):
        error = InvalidTokenError()

        assert isinstance(error, AuthError)
        assert error.status_code == 401

    def test_subject_id(self):
        assert subject_id({"sub": "7"}) == 7
        with pytest.raises(InvalidTokenError):
            subject_id({"sub": "abc"})
        with pytest.raises(InvalidTokenError):
            subject_id({})
