import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

# Missing credentials reach get_current_user, which answers 401
security = HTTPBearer(auto_error=False)


def create_access_token(
    subject: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed bearer token for ``subject``.

    Tokens are normally minted by the identity provider; this helper exists for
    tooling and tests.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims: dict[str, Any] = {"sub": subject, "exp": expire}
    if name:
        claims["name"] = name
    if email:
        claims["email"] = email
    return jwt.encode(claims, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry of a bearer token and return its claims"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing subject claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return payload


def resolve_user(db: Session, token: str) -> User:
    """Find the user a token belongs to, creating them on first sight"""
    claims = decode_access_token(token)
    subject = str(claims["sub"])

    user = db.query(User).filter(User.subject == subject).first()
    if user:
        return user

    logger.info(f"🆕 Creating new user for subject: {subject}")
    user = User(subject=subject, full_name=claims.get("name"), email=claims.get("email"))
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
    except IntegrityError:
        # Another request created the same subject between check and insert
        db.rollback()
        user = db.query(User).filter(User.subject == subject).first()
        if not user:
            raise
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    user = resolve_user(db, credentials.credentials)
    logger.debug(f"✅ User authenticated: {user.id}")
    return user
