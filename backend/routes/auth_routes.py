# ---------- routes/auth_routes.py ----------
"""
Auth routes — registration, login and logout.
The JWT is returned in the body for Bearer clients and also set as an
httpOnly session cookie for browsers.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import config
from auth import create_token, get_current_user
from dependencies import get_user_store, get_now
from models.records import UserRecord
from services.user_service import UserService
from stores.base import UserStore

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


# ── Pydantic schemas ──────────────────────────────────────────────
class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str


class LoginRequest(BaseModel):
    email: str
    password: str


# ── Helpers ───────────────────────────────────────────────────────
def _public_user(user: UserRecord) -> dict:
    return {"userId": user.id, "email": user.email, "name": user.name}


def _session_response(user: UserRecord, status_code: int = 200) -> JSONResponse:
    token = create_token({"user_id": user.id, "email": user.email, "name": user.name})
    response = JSONResponse(
        {"success": True, "data": {"user": _public_user(user), "token": token}},
        status_code=status_code,
    )
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        max_age=config.JWT_EXPIRY_HOURS * 3600,
        path="/",
    )
    return response


# ── Routes ────────────────────────────────────────────────────────
@router.post("/register")
def register(body: RegisterRequest, users: UserStore = Depends(get_user_store), now: datetime = Depends(get_now)):
    """Create an account and start a session."""
    user = UserService.register(users, body.email, body.password, body.name, now)
    return _session_response(user, status_code=status.HTTP_201_CREATED)


@router.post("/login")
def login(body: LoginRequest, users: UserStore = Depends(get_user_store), now: datetime = Depends(get_now)):
    """Authenticate with email + password."""
    user = UserService.authenticate(users, body.email, body.password, now)
    return _session_response(user)


@router.post("/logout")
def logout():
    response = JSONResponse({"success": True, "data": None})
    response.delete_cookie(config.SESSION_COOKIE_NAME, path="/")
    return response


@router.get("/me")
def me(user_id: str = Depends(get_current_user), users: UserStore = Depends(get_user_store)):
    """Return the current user's profile."""
    user = users.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return {"success": True, "data": {"user": _public_user(user)}}
