"""
Authentication: password hashing, opaque bearer tokens and the FastAPI
dependencies that resolve the calling user.

Tokens are random strings handed to the client once; the database only
keeps their sha256 digest.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple
import hashlib
import hmac
import logging
import secrets

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from anvago.core.config import settings
from anvago.core.errors import ForbiddenError, UnauthenticatedError
from anvago.db.database import get_db
from anvago.db.models import AuthToken, User

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

ACCESS = "access"
REFRESH = "refresh"


# ============================================================================
# PASSWORDS
# ============================================================================

def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Return 'pbkdf2_sha256$<iterations>$<salt>$<hex digest>'."""
    iterations = iterations or settings.password_hash_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()
    return f"pbkdf2_sha256${iterations}${salt}${digest}"


def verify_password(password: str, encoded: Optional[str]) -> bool:
    if not encoded:
        return False
    try:
        algorithm, iterations, salt, digest = encoded.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        logger.warning("Malformed password hash encountered")
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), rounds).hex()
    return hmac.compare_digest(candidate, digest)


# ============================================================================
# TOKENS
# ============================================================================

def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def issue_token(db: Session, user: User, kind: str) -> Tuple[str, datetime]:
    if kind == ACCESS:
        ttl = timedelta(minutes=settings.access_token_ttl_minutes)
    else:
        ttl = timedelta(days=settings.refresh_token_ttl_days)
    token = secrets.token_urlsafe(32)
    expires_at = datetime.utcnow() + ttl
    db.add(AuthToken(token_hash=_digest(token), kind=kind, user_id=user.id, expires_at=expires_at))
    return token, expires_at


def issue_token_pair(db: Session, user: User) -> dict:
    access, access_expires = issue_token(db, user, ACCESS)
    refresh, _ = issue_token(db, user, REFRESH)
    db.commit()
    return {
        "accessToken": access,
        "refreshToken": refresh,
        "tokenType": "bearer",
        "expiresAt": access_expires.isoformat(),
    }


def resolve_token(db: Session, token: str, kind: str) -> Optional[AuthToken]:
    record = db.query(AuthToken).filter(AuthToken.token_hash == _digest(token)).first()
    if record is None or record.kind != kind or record.revoked:
        return None
    if record.expires_at <= datetime.utcnow():
        return None
    return record


def revoke_user_tokens(db: Session, user: User) -> int:
    count = (
        db.query(AuthToken)
        .filter(AuthToken.user_id == user.id, AuthToken.revoked.is_(False))
        .update({AuthToken.revoked: True}, synchronize_session=False)
    )
    db.commit()
    return count


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The caller if a valid bearer token was sent; None otherwise."""
    if credentials is None or not credentials.credentials:
        return None
    record = resolve_token(db, credentials.credentials, ACCESS)
    return record.user if record else None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Authentication required")
    record = resolve_token(db, credentials.credentials, ACCESS)
    if record is None:
        raise UnauthenticatedError("Invalid or expired token")
    return record.user


def require_admin(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
) -> Optional[User]:
    """Admin users, or any caller presenting the configured X-API-Key."""
    api_key = request.headers.get("X-API-Key", "")
    if settings.admin_api_key and api_key and hmac.compare_digest(api_key, settings.admin_api_key):
        return user
    if user is None:
        raise UnauthenticatedError("Authentication required")
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
