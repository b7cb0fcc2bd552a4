"""
api/routes/v1/users.py -- Read-only user endpoints behind the auth gates.

Routes:
  GET /api/v1/users/me   -- current user (requires auth)
  GET /api/v1/users      -- all users (admin and lead-guide only)

Everything is mapped through PublicUser, so no digest or reset-token field can
reach the response.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import MeResponse, UserListResponse, UserResponse
from auth.dependencies import protect, restrict_to
from auth.models import PublicUser, Role, User
from auth.store import UserStore

# Auth policy:
# - GET /users/me: requires auth (protect)
# - GET /users:    requires role admin or lead-guide (restrict_to)
router = APIRouter(prefix="/users")


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(protect)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(user=UserResponse.from_public(PublicUser.from_user(current_user)))


@router.get("", response_model=UserListResponse)
def list_users(
    request: Request,
    current_user: User = Depends(restrict_to(Role.ADMIN, Role.LEAD_GUIDE)),
) -> UserListResponse:
    """List all user accounts."""
    user_store: UserStore = request.app.state.user_store
    users = [UserResponse.from_public(PublicUser.from_user(u)) for u in user_store.list_users()]
    return UserListResponse(results=len(users), users=users)
