"""
auth/service.py -- Signup, login and password change.

AuthService composes UserStore, PasswordHasher and TokenIssuer. Every
successful flow ends in the same place: a fresh session token plus the
PublicUser projection (AuthResult). Routes add the cookie and the JSON
envelope; nothing here knows about HTTP.

Account enumeration [login]:
  Unknown email and wrong password raise the exact same InvalidCredentials
  (same class, same message), and bcrypt runs in both branches -- against the
  dummy digest when the email is unknown -- so neither the body nor the
  response time tells them apart.

Role on signup:
  signup() does not take a role. Every self-registered account is Role.USER;
  promotion happens through UserStore.update_user() by an administrator.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from auth.errors import InvalidCredentials, UserGone, ValidationError
from auth.models import AuthResult, PublicUser, Role, User
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("natours.auth")

MIN_PASSWORD_LENGTH = 8


def check_new_password(password: str, password_confirm: str) -> None:
    """Raise ValidationError unless password is acceptable and confirmed."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"A password must have at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long.")
    if password != password_confirm:
        raise ValidationError("Passwords are not the same!")


class AuthService:
    def __init__(self, store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer

    def issue(self, user: User) -> AuthResult:
        return AuthResult(token=self.issuer.sign(user.id), user=PublicUser.from_user(user))

    def issue_for(self, user_id: int) -> AuthResult:
        """Re-read the account after a write and log it in."""
        user = self.store.get_by_id(user_id)
        if user is None:
            # Deleted between the write and the re-read.
            raise UserGone()
        return self.issue(user)

    def signup(self, name: str, email: str, password: str, password_confirm: str) -> AuthResult:
        name = name.strip()
        if not name:
            raise ValidationError("Please tell us your name!")
        check_new_password(password, password_confirm)

        user = User(name=name, email=email, hashed_password=self.hasher.hash(password), role=Role.USER)
        try:
            user_id = self.store.create_user(user)
        except IntegrityError as exc:
            raise ValidationError("An account with this email already exists.") from exc

        logger.info("User %d signed up", user_id)
        return self.issue_for(user_id)

    def login(self, email: str | None, password: str | None) -> AuthResult:
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = self.store.get_by_email(email)
        if user is None:
            self.hasher.verify_dummy(password)
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.hashed_password):
            raise InvalidCredentials()

        logger.info("User %d logged in", user.id)
        return self.issue(user)

    def update_password(
        self,
        user_id: int,
        password_current: str,
        password: str,
        password_confirm: str,
    ) -> AuthResult:
        """Change the password of a logged-in user after re-checking the current one.

        Tokens issued before this call become stale (see protect()); the
        returned token is the caller's new session.
        """
        user = self.store.get_by_id(user_id)
        if user is None:
            raise UserGone()
        if not self.hasher.verify(password_current, user.hashed_password):
            raise InvalidCredentials("Your current password is wrong")
        check_new_password(password, password_confirm)

        new_hash = self.hasher.hash(password)
        changed = self.store.update_password(
            user.id,
            new_hash,
            changed_at=datetime.now(timezone.utc),
            expected_hash=user.hashed_password,
        )
        if not changed:
            # A concurrent change replaced the digest we verified against.
            raise InvalidCredentials("Your current password is wrong")

        logger.info("User %d changed password", user.id)
        return self.issue_for(user.id)
