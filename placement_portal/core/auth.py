"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT access tokens (with a `jti` so logout can revoke them)
- Purpose tokens for unsubscribe links and password resets
- FastAPI dependencies for protected routes
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text

from placement_portal.core.config import get_settings
from placement_portal.db.postgres import get_db_session

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor
bearer_scheme = HTTPBearer()


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def create_purpose_token(subject: str, purpose: str, expires_delta: Optional[timedelta] = None) -> str:
    """Signed token bound to one subject and one purpose (unsubscribe, password_reset)."""
    to_encode = {"sub": subject, "purpose": purpose, "iat": datetime.utcnow()}
    if expires_delta:
        to_encode["exp"] = datetime.utcnow() + expires_delta
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_purpose_token(token: str, purpose: str, subject: Optional[str] = None) -> Optional[dict]:
    """Payload of a valid purpose token, or None."""
    payload = decode_token(token)
    if not payload or payload.get("purpose") != purpose:
        return None
    if subject is not None and payload.get("sub") != subject:
        return None
    return payload


def is_token_revoked(jti: Optional[str]) -> bool:
    if not jti:
        return False
    with get_db_session() as db:
        result = db.execute(
            text("SELECT jti FROM revoked_tokens WHERE jti = :jti"),
            {"jti": jti}
        )
        return result.fetchone() is not None


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("purpose"):
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    if is_token_revoked(payload.get("jti")):
        raise credentials_exception

    # Verify user exists
    with get_db_session() as db:
        result = db.execute(
            text("SELECT user_id, email, role, is_active FROM users WHERE user_id = :id"),
            {"id": int(user_id)}
        )
        user = result.fetchone()

    if not user:
        raise credentials_exception

    if not user[3]:  # is_active
        raise HTTPException(status_code=403, detail="Account deactivated")

    return {
        "user_id": str(user[0]),
        "email": user[1],
        "role": user[2],
        "token": credentials.credentials,
    }


def require_roles(*roles: str):
    """
    Dependency factory - allow only the given roles.

    Usage:
        @router.put("/x", dependencies=[Depends(require_roles("admin"))])
    """
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            raise HTTPException(status_code=403, detail=f"Allowed roles: {', '.join(roles)}")
        return user
    return dependency


async def get_current_student(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require student role. The student document id is the user id."""
    if user["role"] != "student":
        raise HTTPException(status_code=403, detail="Students only")
    user["student_id"] = user["user_id"]
    return user
