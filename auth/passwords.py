"""
auth/passwords.py -- bcrypt password hashing and verification.

Bcrypt is the right choice for low-entropy secrets (passwords) because its
cost factor makes brute-force expensive. The salt is generated per call and
embedded in the digest, so nothing else needs to be stored.

bcrypt only looks at the first 72 bytes of its input and current releases
refuse longer input outright. hash() rejects such passwords with a
ValidationError so the limit surfaces as a normal 400 instead of a silent
truncation; verify() simply reports them as non-matching.

The dummy digest enables timing equalization in AuthService.login() so
response time does not reveal whether an email is registered.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

from auth.errors import ValidationError

MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, adaptive one-way hashing of passwords.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("pass1234")
        hasher.verify("pass1234", digest)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Computed once so the first failed login is not measurably slower
        # than later ones.
        self._dummy_hash = self.hash("natours_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of the given plaintext password."""
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt digest.

        bcrypt.checkpw compares in constant time, so a partially correct
        password takes as long to reject as a completely wrong one.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError:
            # Malformed digest in storage.
            return False

    def verify_dummy(self, plain: str) -> None:
        """Burn the same bcrypt work as a real check. Result is always discarded."""
        self.verify(plain, self._dummy_hash)
