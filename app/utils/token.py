from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.models.user import User
from app.utils.errors import AuthenticationError, UnauthorizedError

# Tokens are issued by the auth service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def _user_id_from(payload: dict) -> Optional[int]:
    # older tokens carry user_id, newer ones the standard sub claim
    raw = payload.get("user_id") or payload.get("sub")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session)
) -> User:
    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError()

    user_id = _user_id_from(payload)
    if user_id is None:
        raise AuthenticationError("Invalid token payload")

    user = session.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")

    if not user.can_login:
        raise UnauthorizedError("User account is disabled")

    return user
