"""Unit tests for auth/passwords.py -- bcrypt hashing and verification."""

from __future__ import annotations

import pytest

from auth.errors import ValidationError
from auth.passwords import PasswordHasher


class TestPasswordHasher:
    def test_hash_verifies_against_same_password(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("abc12345")
        assert hasher.verify("abc12345", digest)

    def test_wrong_password_does_not_verify(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("abc12345")
        assert not hasher.verify("abc12346", digest)

    def test_digest_is_not_plaintext(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("abc12345")
        assert "abc12345" not in digest
        assert digest.startswith("$2")

    def test_salt_differs_per_call(self, hasher: PasswordHasher) -> None:
        """Same input twice must give two different digests that both verify."""
        first = hasher.hash("abc12345")
        second = hasher.hash("abc12345")
        assert first != second
        assert hasher.verify("abc12345", first)
        assert hasher.verify("abc12345", second)

    def test_rounds_are_embedded_in_digest(self) -> None:
        digest = PasswordHasher(rounds=5).hash("abc12345")
        assert digest.split("$")[2] == "05"

    def test_password_over_72_bytes_rejected_on_hash(self, hasher: PasswordHasher) -> None:
        with pytest.raises(ValidationError):
            hasher.hash("a" * 73)

    def test_password_over_72_bytes_never_verifies(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("a" * 72)
        assert hasher.verify("a" * 72, digest)
        assert not hasher.verify("a" * 73, digest)

    def test_malformed_digest_does_not_verify(self, hasher: PasswordHasher) -> None:
        assert not hasher.verify("abc12345", "not-a-bcrypt-hash")

    def test_verify_dummy_returns_nothing(self, hasher: PasswordHasher) -> None:
        assert hasher.verify_dummy("whatever") is None
