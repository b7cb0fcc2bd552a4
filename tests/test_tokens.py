"""Unit tests for auth/tokens.py -- session tokens, reset-token digests, cookie helper.

Covers:
  - sign() -> verify() round trip yields the subject id and issue time
  - expired token -> TokenExpired (never silently accepted)
  - forged / malformed / wrong-algorithm tokens -> InvalidToken
  - reset tokens: 64 hex chars raw, sha256 digest stored
  - cookie attributes follow the environment
"""

from __future__ import annotations

import hashlib
import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Response
from jose import jwt

from auth.errors import InvalidToken, TokenExpired
from auth.tokens import TokenIssuer, generate_reset_token, hash_reset_token, set_auth_cookie
from core.config import Settings


class TestTokenIssuer:
    def test_round_trip(self, issuer: TokenIssuer) -> None:
        before = time.time()
        claims = issuer.verify(issuer.sign(42))
        assert claims.subject_id == 42
        assert before <= claims.issued_at <= time.time()

    def test_issue_time_keeps_sub_second_precision(self, issuer: TokenIssuer) -> None:
        first = issuer.verify(issuer.sign(1)).issued_at
        time.sleep(0.01)
        second = issuer.verify(issuer.sign(1)).issued_at
        assert second > first
        assert second - first < 1

    def test_expired_token_raises_token_expired(self, secret_key: str) -> None:
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "1", "iat": past, "exp": past + timedelta(hours=1)},
            secret_key,
            algorithm="HS256",
        )
        with pytest.raises(TokenExpired):
            TokenIssuer(secret_key, 3600).verify(token)

    def test_elapsed_ttl_raises_token_expired(self, secret_key: str) -> None:
        short_lived = TokenIssuer(secret_key, expire_seconds=-1)
        with pytest.raises(TokenExpired):
            short_lived.verify(short_lived.sign(1))

    def test_wrong_secret_raises_invalid_token(self, issuer: TokenIssuer) -> None:
        other = TokenIssuer("another-secret-key-that-is-long-enough-xyz", 3600)
        with pytest.raises(InvalidToken):
            issuer.verify(other.sign(1))

    def test_garbage_raises_invalid_token(self, issuer: TokenIssuer) -> None:
        with pytest.raises(InvalidToken):
            issuer.verify("not.a.jwt")

    def test_other_algorithm_rejected(self, issuer: TokenIssuer, secret_key: str) -> None:
        """A token signed with HS512 under the right key is still refused: the algorithm is fixed."""
        now = datetime.now(timezone.utc)
        token = jwt.encode({"sub": "1", "iat": now, "exp": now + timedelta(hours=1)}, secret_key, algorithm="HS512")
        with pytest.raises(InvalidToken):
            issuer.verify(token)

    def test_missing_subject_raises_invalid_token(self, issuer: TokenIssuer, secret_key: str) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode({"iat": now, "exp": now + timedelta(hours=1)}, secret_key, algorithm="HS256")
        with pytest.raises(InvalidToken):
            issuer.verify(token)

    def test_non_numeric_subject_raises_invalid_token(self, issuer: TokenIssuer, secret_key: str) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode({"sub": "abc", "iat": now, "exp": now + timedelta(hours=1)}, secret_key, algorithm="HS256")
        with pytest.raises(InvalidToken):
            issuer.verify(token)


class TestResetTokens:
    def test_generate_returns_raw_and_sha256(self) -> None:
        raw, digest = generate_reset_token()
        assert len(raw) == 64
        assert digest == hashlib.sha256(raw.encode()).hexdigest()
        assert raw != digest

    def test_tokens_are_unique(self) -> None:
        assert generate_reset_token()[0] != generate_reset_token()[0]

    def test_hash_is_deterministic(self) -> None:
        assert hash_reset_token("abc") == hash_reset_token("abc")


class TestAuthCookie:
    def test_cookie_is_http_only_and_not_secure_in_development(self, settings: Settings) -> None:
        response = Response()
        set_auth_cookie(response, "tok", settings)
        header = response.headers["set-cookie"].lower()
        assert header.startswith("jwt=tok")
        assert "httponly" in header
        assert "secure" not in header

    def test_cookie_is_secure_in_production(self, secret_key: str) -> None:
        response = Response()
        set_auth_cookie(response, "tok", Settings(secret_key=secret_key, environment="production"))
        assert "secure" in response.headers["set-cookie"].lower()
