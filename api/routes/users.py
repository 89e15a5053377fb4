"""
api/routes/users.py -- User directory endpoints.

Routes:
  GET /api/users             -- list all active users (public; the SPA calls this)
  GET /api/users/me          -- the caller's own record (requires auth)
  GET /api/users/{username}  -- one user by username (requires auth)

/users/me is registered before /users/{username} or FastAPI would capture
"me" as a username.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import UserResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore

# Auth policy:
# - GET /api/users:            public
# - GET /api/users/me:         requires auth (get_current_user)
# - GET /api/users/{username}: requires auth (get_current_user)
router = APIRouter()


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request) -> list[UserResponse]:
    user_store: UserStore = request.app.state.user_store
    return [_user_to_response(u) for u in user_store.list_users()]


@router.get("/users/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the user named by the bearer token's subject claim."""
    return _user_to_response(current_user)


@router.get("/users/{username}", response_model=UserResponse)
def get_user(
    request: Request,
    username: str,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_username(username.lower())
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return _user_to_response(user)


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, username=user.username, created_at=user.created_at or "")
