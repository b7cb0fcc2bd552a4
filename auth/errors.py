"""
auth/errors.py -- Operational error taxonomy for the auth subsystem.

Every class here is an *expected*, caller-facing failure: it carries an HTTP
status code, a stable machine-readable code, and a message that is safe to
show to the client. api/main.py turns any AppError into the standard
ErrorResponse envelope. Anything that is not an AppError is treated as a
programmer error or an infrastructure fault and never reaches the client
beyond a generic 500.

Layer rule: stdlib only.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for operational errors."""

    status_code: int = 500
    code: str = "error"
    message: str = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    message = "Invalid input data."


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------


class AuthError(AppError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class NoToken(AuthError):
    code = "no_token"
    message = "You are not logged in! Please log in to get access."


class InvalidToken(AuthError):
    code = "invalid_token"
    message = "Invalid token. Please log in again!"


class TokenExpired(AuthError):
    code = "token_expired"
    message = "Your token has expired! Please log in again."


class StaleToken(AuthError):
    code = "stale_token"
    message = "User recently changed password! Please log in again."


class UserGone(AuthError):
    code = "user_gone"
    message = "The user belonging to this token does no longer exist."


class InvalidCredentials(AuthError):
    # Same code and message for "unknown email" and "wrong password".
    code = "bad_credentials"
    message = "Incorrect email or password"


class Forbidden(AuthError):
    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action"


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


class UserNotFound(AppError):
    status_code = 404
    code = "user_not_found"
    message = "There is no user with this email"


class ResetTokenInvalid(AppError):
    # Deliberately covers both "wrong token" and "expired token".
    status_code = 400
    code = "reset_token_invalid"
    message = "Token is not valid or has expired"


class DeliveryError(AppError):
    status_code = 500
    code = "email_delivery_failed"
    message = "There was an error sending the email. Try again later!"
