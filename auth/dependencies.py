"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

protect() is the authentication gate. It runs the same four checks in order
for every protected route and raises the first one that fails:

  1. a token is present       -- Authorization: Bearer <token>, falling back
                                 to the "jwt" cookie this service sets
                                 (NoToken)
  2. the token verifies       -- signature + expiry (InvalidToken / TokenExpired)
  3. the subject still exists (UserGone)
  4. the token is not older than the last password change (StaleToken).
     This is the only way to revoke a stateless token.

restrict_to(*roles) is the authorization gate. It depends on protect(), so
it can never run before an identity is attached, and it does no I/O: just a
membership test against a fixed set of Role members.

Layer rule: auth/dependencies.py may import from fastapi (for Depends/Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.errors import Forbidden, NoToken, StaleToken, UserGone
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, TokenIssuer

_BEARER_PREFIX = "Bearer "


def _extract_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith(_BEARER_PREFIX):
        token = auth_header[len(_BEARER_PREFIX) :].strip()
        return token or None
    if auth_header:
        # A malformed Authorization header is not silently replaced by the cookie.
        return None
    return request.cookies.get(COOKIE_NAME) or None


def protect(request: Request) -> User:
    """Require a valid, current session. Returns the authenticated User.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(protect)): ...
    """
    token = _extract_token(request)
    if token is None:
        raise NoToken()

    issuer: TokenIssuer = request.app.state.token_issuer
    claims = issuer.verify(token)

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.subject_id)
    if user is None:
        raise UserGone()

    if user.password_changed_at is not None and user.password_changed_at.timestamp() > claims.issued_at:
        raise StaleToken()

    request.state.user = user
    return user


def restrict_to(*roles: Role) -> Callable[..., User]:
    """Build a dependency that admits only the given roles.

    Use as a FastAPI dependency:
        @router.get("/admin-only")
        def route(user: User = Depends(restrict_to(Role.ADMIN, Role.LEAD_GUIDE))): ...
    """
    allowed = frozenset(Role(r) for r in roles)

    def _check_role(user: User = Depends(protect)) -> User:
        if user.role not in allowed:
            raise Forbidden()
        return user

    return _check_role
