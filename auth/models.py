"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these only own the shape.

User carries the password digest and reset-token fields because the store and
the auth flows need them. Anything leaving the process goes through
PublicUser, which has no digest or reset-token fields at all -- omission is a
property of the type, not of remembering to delete a key.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    USER = "user"
    GUIDE = "guide"
    LEAD_GUIDE = "lead-guide"
    ADMIN = "admin"


@dataclass
class User:
    """A registered account.

    password_changed_at stays None until the first password change after
    signup. password_reset_token holds the sha256 hex digest of the
    outstanding reset token, never the raw value; it and
    password_reset_expires are either both set or both None.
    """

    name: str
    email: str
    hashed_password: str
    role: Role = Role.USER
    id: int | None = None
    password_changed_at: datetime | None = None
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PublicUser:
    """Externally visible projection of a User."""

    id: int
    name: str
    email: str
    role: Role
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> PublicUser:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
        )


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    subject_id: int
    issued_at: float  # seconds since epoch (fractional), as carried in the JWT "iat" claim


@dataclass(frozen=True)
class AuthResult:
    """Outcome of every flow that logs a user in: a fresh token plus who it is for."""

    token: str
    user: PublicUser
