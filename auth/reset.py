"""
auth/reset.py -- Password reset token lifecycle.

Per user the flow moves through:

    no pending reset --request_reset--> token issued --consume_reset--> consumed
                                             |
                                             +-- 10 minutes pass --> expired
                                             +-- delivery fails  --> cleared

forgot_password() is an explicit two-phase operation:
  1. persist the token hash + expiry (one UPDATE, both columns),
  2. attempt delivery,
  3. on DeliveryError, issue the compensating clear_reset_token() so no
     token that nobody received stays pending, then re-raise.

consume_reset() never says *why* a token was rejected: wrong and expired
both raise ResetTokenInvalid so the response does not reveal validity
windows.

Unknown email on forgot_password raises UserNotFound (404). Login goes out
of its way not to disclose whether an email is registered; this endpoint
currently does. Kept as-is on purpose, see DESIGN.md.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from auth.errors import DeliveryError, ResetTokenInvalid, UserNotFound
from auth.mailer import EmailMessage, EmailSender
from auth.models import AuthResult, User
from auth.service import AuthService, check_new_password
from auth.store import UserStore
from auth.tokens import generate_reset_token, hash_reset_token
from core.config import RESET_TOKEN_TTL

logger = logging.getLogger("natours.reset")

RESET_EMAIL_SUBJECT = "Your password reset token (valid for 10 mins)"


def _reset_email_body(reset_url: str) -> str:
    return (
        f"Forgot your password? Submit a PATCH request with your new password and passwordConfirm to: "
        f"{reset_url}.\nIf you didn't forget your password, please ignore this email!"
    )


class PasswordResetFlow:
    def __init__(self, store: UserStore, auth: AuthService, sender: EmailSender) -> None:
        self.store = store
        self.auth = auth
        self.sender = sender

    def request_reset(self, email: str) -> tuple[User, str]:
        """Issue a reset token for the account behind email.

        Returns (user, raw_token). The raw token is not stored anywhere; the
        caller is responsible for getting it to the user out-of-band.
        """
        user = self.store.get_by_email(email)
        if user is None:
            raise UserNotFound()

        raw, token_hash = generate_reset_token()
        expires = datetime.now(timezone.utc) + RESET_TOKEN_TTL
        if not self.store.set_reset_token(user.id, token_hash, expires):
            # Deleted between lookup and write.
            raise UserNotFound()
        return user, raw

    def forgot_password(self, email: str, build_reset_url: Callable[[str], str]) -> None:
        user, raw = self.request_reset(email)
        message = EmailMessage(
            to=user.email,
            subject=RESET_EMAIL_SUBJECT,
            body=_reset_email_body(build_reset_url(raw)),
        )
        try:
            self.sender.send(message)
        except DeliveryError:
            self.store.clear_reset_token(user.id, hash_reset_token(raw))
            logger.warning("Reset email for user %d not delivered; pending token cleared", user.id)
            raise
        logger.info("Reset token issued for user %d", user.id)

    def consume_reset(self, raw_token: str, password: str, password_confirm: str) -> AuthResult:
        token_hash = hash_reset_token(raw_token)
        now = datetime.now(timezone.utc)

        user = self.store.get_by_reset_token(token_hash, now)
        if user is None:
            raise ResetTokenInvalid()
        check_new_password(password, password_confirm)

        new_hash = self.auth.hasher.hash(password)
        if not self.store.consume_reset_token(user.id, token_hash, now, new_hash):
            # Consumed or replaced by a concurrent request since the lookup.
            raise ResetTokenInvalid()

        logger.info("User %d reset password", user.id)
        return self.auth.issue_for(user.id)
