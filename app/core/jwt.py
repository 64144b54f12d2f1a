# app/core/jwt.py

from datetime import datetime, timedelta
from typing import Optional
from jose import jwt, JWTError
from app.core.config import settings


class InvalidTokenError(Exception):
    pass


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Validate a bearer token and return the identity it carries.
    Tokens issued by the login flow put the user id in `userId`; `sub` is accepted too.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Token carries no user id")

    return {
        "user_id": str(user_id),
        "email": payload.get("email"),
        "user_type": payload.get("userType"),
    }
