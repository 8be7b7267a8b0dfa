"""
Unit tests for password hashing, token hashing and JWTs.
"""

from unittest.mock import patch

from app.core.config import settings
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_token,
    hash_password,
    hash_token,
    verify_password,
)


class TestPasswords:
    """Tests for bcrypt hashing."""

    def test_hash_and_verify(self):
        with patch.object(settings, "bcrypt_rounds", 4):
            hashed = hash_password("correct-horse")

        assert hashed != "correct-horse"
        assert verify_password("correct-horse", hashed) is True
        assert verify_password("wrong-horse", hashed) is False

    def test_hashes_are_salted(self):
        with patch.object(settings, "bcrypt_rounds", 4):
            assert hash_password("same") != hash_password("same")

    def test_verify_rejects_missing_or_malformed_hash(self):
        assert verify_password("anything", None) is False
        assert verify_password("anything", "not-a-bcrypt-hash") is False
        assert verify_password("", "$2b$04$abc") is False


class TestTokens:
    """Tests for one-time token helpers."""

    def test_hash_token_is_sha256_hex(self):
        digest = hash_token("tok")
        assert len(digest) == 64
        assert digest == hash_token("tok")
        assert digest != hash_token("tok2")

    def test_generate_token_is_random(self):
        assert generate_token() != generate_token()


class TestJwt:
    """Tests for JWT creation and decoding."""

    def test_access_token_round_trip_carries_claims(self):
        token = create_access_token("user-1", additional_claims={"role": "ADMIN"})
        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"
        assert payload["role"] == "ADMIN"

    def test_refresh_token_type(self):
        assert decode_token(create_refresh_token("user-1"))["type"] == "refresh"

    def test_tampered_token_is_rejected(self):
        token = create_access_token("user-1")
        assert decode_token(token[:-2] + "xx") is None
        assert decode_token("garbage") is None
