"""
Password hashing, JWT tokens and the auth dependencies used by the routers
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.database import get_db
from portal.models import User, UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "userId": user_id,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """Returns the user id carried by the token; raises jwt.PyJWTError when invalid or expired."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    user_id = payload.get("userId")
    if not user_id:
        raise jwt.InvalidTokenError("token has no userId claim")
    return user_id


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="No token, authorization denied")

    try:
        user_id = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as e:
        logger.info(f"Rejected token: {e}")
        raise HTTPException(status_code=401, detail="Token is not valid")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Token is not valid")
    return user


def get_admin_user(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Access denied. Admin only.")
    return user


def ensure_default_admin(db: Session) -> Optional[User]:
    """Creates the configured admin account unless a user already holds its email or Aadhar."""
    existing = (
        db.query(User)
        .filter(
            (User.email == settings.DEFAULT_ADMIN_EMAIL.lower())
            | (User.aadhar_number == settings.DEFAULT_ADMIN_AADHAR)
        )
        .first()
    )
    if existing:
        return None

    admin = User(
        first_name="Admin",
        last_name="User",
        email=settings.DEFAULT_ADMIN_EMAIL.lower(),
        password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        phone_number=settings.DEFAULT_ADMIN_PHONE,
        aadhar_number=settings.DEFAULT_ADMIN_AADHAR,
        role=UserRole.ADMIN,
        is_verified=True,
    )
    db.add(admin)
    db.commit()
    logger.info(f"👤 Default admin created: {admin.email}")
    return admin
