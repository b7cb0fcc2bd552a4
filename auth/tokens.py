"""
auth/tokens.py -- JWT session tokens, reset-token digests, and the auth cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry only the subject (user id) and
       the issue/expiry timestamps. The algorithm is fixed on both sides:
       decode() is always called with algorithms=["HS256"], so a token
       announcing "none" or an asymmetric algorithm in its header is rejected
       (no algorithm confusion).

       verify() raises instead of returning None because protect() must tell
       an expired token apart from a forged one.

  Reset tokens: secrets.token_hex(32) gives 256 bits of entropy. Only the
       sha256 hex digest is stored; the raw value exists in the email and
       nowhere else. A plain hash is enough here (no salt, no bcrypt) because
       the input is high-entropy random data, not a password, and it must be
       deterministic for lookup.

  Cookie: httpOnly, samesite=lax, secure only in production.

Layer rule: no imports from api/. Settings are passed in, never read here.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import InvalidToken, TokenExpired
from auth.models import TokenClaims

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("natours.auth")

_ALGORITHM = "HS256"

COOKIE_NAME = "jwt"


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Signs and verifies stateless session tokens.

    Args:
        secret_key:     HMAC signing key (>= 32 chars, validated by Settings).
        expire_seconds: Token lifetime.
    """

    def __init__(self, secret_key: str, expire_seconds: int) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def sign(self, subject_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            # Sub-second precision so a token can be ordered against a password
            # change that happened within the same second.
            "iat": now.timestamp(),
            "exp": now + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a JWT.

        Raises:
            TokenExpired: signature is valid but exp has passed.
            InvalidToken: bad signature, malformed token, or missing claims.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise InvalidToken() from exc

        try:
            return TokenClaims(subject_id=int(payload["sub"]), issued_at=float(payload["iat"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken() from exc


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


def generate_reset_token() -> tuple[str, str]:
    """Return (raw_token, token_hash). Only token_hash may be persisted."""
    raw = secrets.token_hex(32)
    return raw, hash_reset_token(raw)


def hash_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
    secure: only sent over HTTPS when running in production.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        expires=datetime.now(timezone.utc) + timedelta(days=settings.cookie_expire_days),
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME)
