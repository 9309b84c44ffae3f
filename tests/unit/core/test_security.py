"""
Unit tests for security utilities (password hashing, access credentials).

All tests are fully isolated - no database or external dependencies.
"""

from datetime import timedelta

import pytest
from jose import ExpiredSignatureError, JWTError, jwt

from orgsync.core import security
from orgsync.core.config import settings


class TestPasswordHashing:
    """Test password hashing with Argon2id."""

    def test_hash_password_returns_argon2id_string(self):
        """Test that hash_password returns an Argon2id hash."""
        hashed = security.hash_password("TestPassword123")

        assert isinstance(hashed, str)
        assert hashed.startswith("$argon2id$")

    def test_hash_password_different_for_same_password(self):
        """Test that hashing the same password twice produces different hashes (salt)."""
        assert security.hash_password("TestPassword123") != security.hash_password(
            "TestPassword123"
        )

    def test_verify_password_correct_password(self):
        hashed = security.hash_password("TestPassword123")

        assert security.verify_password("TestPassword123", hashed) is True

    def test_verify_password_incorrect_password(self):
        hashed = security.hash_password("TestPassword123")

        assert security.verify_password("WrongPassword123", hashed) is False

    def test_verify_password_malformed_hash(self):
        """Test that a malformed hash never verifies."""
        assert security.verify_password("password", "not_a_valid_argon2_hash") is False

    @pytest.mark.parametrize("missing", [None, ""])
    def test_verify_password_without_hash(self, missing):
        """Test that users without a local hash (synchronized users) cannot log in."""
        assert security.verify_password("anything", missing) is False


class TestPasswordStrengthValidation:
    """Test password strength validation."""

    def test_validate_strong_password(self):
        assert security.validate_password_strength("Strong123") == (True, None)

    @pytest.mark.parametrize(
        "password,expected_error",
        [
            ("Sh0rt", "Password must be at least 8 characters long"),
            ("lowercase123", "Password must contain at least one uppercase letter"),
            ("UPPERCASE123", "Password must contain at least one lowercase letter"),
            ("NoDigitsHere", "Password must contain at least one digit"),
        ],
    )
    def test_validate_weak_password(self, password, expected_error):
        is_valid, error = security.validate_password_strength(password)

        assert is_valid is False
        assert error == expected_error


class TestAccessCredentials:
    """Test JWT access credential creation and decoding."""

    def test_create_and_decode_access_token(self):
        """Test that claims survive encoding and standard claims are added."""
        token = security.create_access_token(
            {"sub": "user-1", "role": "admin", "accountId": "acc-1"}
        )

        claims = security.decode_token(token)

        assert claims["sub"] == "user-1"
        assert claims["role"] == "admin"
        assert claims["accountId"] == "acc-1"
        assert claims["type"] == security.TOKEN_TYPE_ACCESS
        assert "exp" in claims and "iat" in claims and "jti" in claims

    def test_token_uses_hs256(self):
        token = security.create_access_token({"sub": "user-1"})

        assert jwt.get_unverified_header(token)["alg"] == "HS256"

    def test_expired_token_raises(self):
        token = security.create_access_token({"sub": "user-1"}, timedelta(seconds=-1))

        with pytest.raises(ExpiredSignatureError):
            security.decode_token(token)

    def test_token_signed_with_other_key_raises(self):
        token = jwt.encode({"sub": "user-1"}, "another-secret-key-of-enough-length!", "HS256")

        with pytest.raises(JWTError):
            security.decode_token(token)

    def test_tampered_token_raises(self):
        token = security.create_access_token({"sub": "user-1"})

        with pytest.raises(JWTError):
            security.decode_token(token[:-4] + "abcd")

    def test_verify_token_type(self):
        claims = security.decode_token(security.create_access_token({"sub": "user-1"}))

        assert security.verify_token_type(claims, "access") is True
        assert security.verify_token_type(claims, "refresh") is False

    def test_default_expiration_matches_settings(self):
        claims = security.decode_token(security.create_access_token({"sub": "user-1"}))

        assert claims["exp"] - claims["iat"] == settings.access_token_expire_minutes * 60
