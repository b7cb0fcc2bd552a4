"""Unit tests for auth/service.py -- signup, login, password change.

Covers:
- signup returns a token for the new user and a projection without the digest
- signup never grants anything but the default role
- login success; identical failure for unknown email and wrong password
- update_password: wrong current password, stamping, fresh token
"""

from __future__ import annotations

import dataclasses

import pytest

from auth.errors import InvalidCredentials, UserGone, ValidationError
from auth.models import Role
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer


class TestSignup:
    def test_signup_returns_token_and_public_user(self, auth_service: AuthService, issuer: TokenIssuer) -> None:
        result = auth_service.signup("Jonas", "jonas@example.com", "abc12345", "abc12345")

        assert issuer.verify(result.token).subject_id == result.user.id
        fields = {f.name for f in dataclasses.fields(result.user)}
        assert "hashed_password" not in fields
        assert not any("password" in name for name in fields)
        assert result.user.role is Role.USER

    def test_password_is_stored_hashed(self, auth_service: AuthService, store: UserStore) -> None:
        auth_service.signup("Jonas", "jonas@example.com", "abc12345", "abc12345")
        stored = store.get_by_email("jonas@example.com")
        assert stored.hashed_password != "abc12345"
        assert auth_service.hasher.verify("abc12345", stored.hashed_password)

    def test_password_confirm_mismatch(self, auth_service: AuthService, store: UserStore) -> None:
        with pytest.raises(ValidationError, match="not the same"):
            auth_service.signup("Jonas", "jonas@example.com", "abc12345", "abc12346")
        assert store.get_by_email("jonas@example.com") is None

    def test_password_too_short(self, auth_service: AuthService) -> None:
        with pytest.raises(ValidationError):
            auth_service.signup("Jonas", "jonas@example.com", "abc", "abc")

    def test_blank_name(self, auth_service: AuthService) -> None:
        with pytest.raises(ValidationError):
            auth_service.signup("   ", "jonas@example.com", "abc12345", "abc12345")

    def test_duplicate_email(self, auth_service: AuthService) -> None:
        auth_service.signup("Jonas", "jonas@example.com", "abc12345", "abc12345")
        with pytest.raises(ValidationError):
            auth_service.signup("Other", "JONAS@example.com", "abc12345", "abc12345")


class TestLogin:
    def test_login_success_token_decodes_to_user(self, auth_service: AuthService, issuer: TokenIssuer, make_user) -> None:
        user = make_user(password="pass1234")
        result = auth_service.login("jonas@example.com", "pass1234")
        assert result.token
        assert issuer.verify(result.token).subject_id == user.id
        assert result.user.email == "jonas@example.com"

    def test_unknown_email_and_wrong_password_are_indistinguishable(self, auth_service: AuthService, make_user) -> None:
        make_user(password="pass1234")

        with pytest.raises(InvalidCredentials) as unknown:
            auth_service.login("nobody@example.com", "pass1234")
        with pytest.raises(InvalidCredentials) as wrong:
            auth_service.login("jonas@example.com", "wrong-password")

        assert type(unknown.value) is type(wrong.value)
        assert unknown.value.message == wrong.value.message == "Incorrect email or password"
        assert unknown.value.code == wrong.value.code
        assert unknown.value.status_code == wrong.value.status_code == 401

    @pytest.mark.parametrize("email,password", [(None, "pass1234"), ("jonas@example.com", None), ("", "")])
    def test_missing_fields(self, auth_service: AuthService, email, password) -> None:
        with pytest.raises(ValidationError, match="Please provide email and password"):
            auth_service.login(email, password)


class TestUpdatePassword:
    def test_wrong_current_password(self, auth_service: AuthService, make_user) -> None:
        user = make_user(password="pass1234")
        with pytest.raises(InvalidCredentials, match="Your current password is wrong"):
            auth_service.update_password(user.id, "nope-nope", "newpass123", "newpass123")

    def test_success_changes_password_and_stamps(self, auth_service: AuthService, store: UserStore, make_user) -> None:
        user = make_user(password="pass1234")
        result = auth_service.update_password(user.id, "pass1234", "newpass123", "newpass123")

        after = store.get_by_id(user.id)
        assert after.password_changed_at is not None
        assert auth_service.hasher.verify("newpass123", after.hashed_password)
        assert result.user.id == user.id
        auth_service.login("jonas@example.com", "newpass123")
        with pytest.raises(InvalidCredentials):
            auth_service.login("jonas@example.com", "pass1234")

    def test_new_password_must_be_confirmed(self, auth_service: AuthService, make_user) -> None:
        user = make_user(password="pass1234")
        with pytest.raises(ValidationError):
            auth_service.update_password(user.id, "pass1234", "newpass123", "different1")

    def test_deleted_user(self, auth_service: AuthService, store: UserStore, make_user) -> None:
        user = make_user()
        store.delete_user(user.id)
        with pytest.raises(UserGone):
            auth_service.update_password(user.id, "pass1234", "newpass123", "newpass123")


class TestIssueAfterWrite:
    def test_signup_reread_missing_raises_user_gone(
        self, auth_service: AuthService, store: UserStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(store, "get_by_id", lambda user_id: None)
        with pytest.raises(UserGone):
            auth_service.signup("Jonas", "jonas@example.com", "abc12345", "abc12345")

    def test_update_password_reread_missing_raises_user_gone(
        self, auth_service: AuthService, store: UserStore, make_user, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        user = make_user(password="pass1234")
        reads = iter([user, None])
        monkeypatch.setattr(store, "get_by_id", lambda user_id: next(reads))
        with pytest.raises(UserGone):
            auth_service.update_password(user.id, "pass1234", "newpass123", "newpass123")
