"""
api/routes/account.py -- Registration and login endpoints.

Routes:
  POST /api/account/register  -- create an account; returns username + bearer token
  POST /api/account/login     -- password login; returns username + bearer token

Both endpoints are public (they are how a client obtains a token) and both are
rate-limited per client IP with LOGIN_RATE_LIMIT. Responses carry
Cache-Control: no-store because the body holds a credential.
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import AccountResponse, LoginRequest, RegisterRequest
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService, authenticate_user, hash_password
from core.config import get_settings

logger = logging.getLogger("datingapp.api")

# Auth policy:
# - POST /api/account/register: public
# - POST /api/account/login:    public
router = APIRouter()


# Read per request so LOGIN_RATE_LIMIT changes apply without re-decorating.
# @limiter.limit goes under @router.post: FastAPI must register the wrapper.
def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


def _account_response(user: User, token_service: TokenService, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AccountResponse(username=user.username, token=token_service.create_token(user)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/account/register", response_model=AccountResponse, status_code=201)
@limiter.limit(_login_rate_limit)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and hand back a token for it.

    Usernames are stored lowercased so "Alice" and "alice" cannot both exist.
    """
    user_store: UserStore = request.app.state.user_store
    username = body.username.lower()

    if user_store.get_by_username(username) is not None:
        raise HTTPException(
            status_code=409,
            detail={"code": "username_taken", "message": "Username is taken."},
        )

    new_user = User(username=username, hashed_password=hash_password(body.password))
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        # A concurrent request won the race for the same username.
        raise HTTPException(
            status_code=409,
            detail={"code": "username_taken", "message": "Username is taken."},
        ) from exc

    new_user.id = user_id
    logger.info("Registered user %s (id=%d)", username, user_id)
    return _account_response(new_user, request.app.state.token_service, status_code=201)


@router.post("/account/login", response_model=AccountResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a bearer token.

    Uses authenticate_user() which includes timing equalization. Wrong
    username and wrong password produce the same "bad_credentials" error.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.username.strip().lower(), body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    return _account_response(user, request.app.state.token_service, status_code=200)
