"""
Authentication routes: password registration and login, token refresh,
logout and the current user.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from anvago.api.schemas import LoginRequest, RefreshRequest, RegisterRequest, UserOut, ok
from anvago.core.config import settings
from anvago.core.errors import UnauthenticatedError, ValidationError
from anvago.core.rate_limiting import limiter, AUTH_LIMIT
from anvago.core.security import (
    REFRESH, get_current_user, hash_password, issue_token_pair, resolve_token,
    revoke_user_tokens, verify_password,
)
from anvago.db.database import get_db
from anvago.db.models import User
from anvago.db.repositories import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_payload(db: Session, user: User) -> dict:
    return {"user": UserOut.model_validate(user), "tokens": issue_token_pair(db, user)}


@router.post("/register", status_code=201)
@limiter.limit(AUTH_LIMIT)
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)):
    repo = UserRepository(db)
    if len(body.password) < settings.password_min_length:
        raise ValidationError(f"Password must be at least {settings.password_min_length} characters")
    if repo.get_by_email(body.email):
        raise ValidationError("Email already registered")

    user = repo.create(email=body.email, name=body.name.strip(), password_hash=hash_password(body.password))
    logger.info(f"Registered user {user.id}")
    return ok(_session_payload(db, user))


@router.post("/login")
@limiter.limit(AUTH_LIMIT)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    user = UserRepository(db).get_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise UnauthenticatedError("Invalid email or password")
    return ok(_session_payload(db, user))


@router.post("/refresh")
@limiter.limit(AUTH_LIMIT)
def refresh(request: Request, body: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new token pair. The old refresh token is revoked."""
    record = resolve_token(db, body.refresh_token, REFRESH)
    if record is None:
        raise UnauthenticatedError("Invalid or expired refresh token")
    record.revoked = True
    return ok({"tokens": issue_token_pair(db, record.user)})


@router.post("/logout")
def logout(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    revoked = revoke_user_tokens(db, user)
    logger.info(f"User {user.id} logged out, {revoked} tokens revoked")
    return ok({"message": "Logged out"})


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return ok(UserOut.model_validate(user))
