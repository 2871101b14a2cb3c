# learnify/auth/auth_utils.py
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Header
from jose import jwt, JWTError

from learnify import config
from learnify.core.errors import AppException, ErrorKind


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:72], hashed_password.encode("utf-8")
        )
    except ValueError:
        # malformed stored hash
        return False


def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a bearer token carrying the user id and role."""
    expire = datetime.utcnow() + (expires_delta or timedelta(days=config.JWT_EXPIRE_DAYS))
    payload = {
        "sub": user["user_id"],
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role", "student"),
        "exp": expire,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def _unauthorized(message: str) -> AppException:
    return AppException(
        status_code=401,
        error_code=ErrorKind.UNAUTHORIZED.value,
        message=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or Expired Token")


def verify_bearer_token(authorization: str = Header(None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Not authorized, no token")

    token = authorization.split(" ", 1)[1].strip()
    payload = decode_access_token(token)
    if not payload.get("sub"):
        raise _unauthorized("Invalid token: missing user id")
    return payload


def optional_bearer_token(authorization: str = Header(None)) -> Optional[dict]:
    """Like verify_bearer_token, but anonymous requests pass through as None"""
    if not authorization:
        return None
    return verify_bearer_token(authorization)
