# study_material/auth/auth_utils.py
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import HTTPException
from jose import jwt, JWTError

from study_material.config import (
    JWT_SECRET, JWT_ALGORITHM, USER_TOKEN_EXPIRE_DAYS, ADMIN_TOKEN_EXPIRE_HOURS, BCRYPT_ROUNDS
)


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8")[:72], hashed_password.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def create_user_token(user: dict) -> str:
    payload = {
        "user": {
            "id": str(user["_id"]),
            "username": user["username"],
            "role": user.get("role", "user")
        },
        "exp": datetime.utcnow() + timedelta(days=USER_TOKEN_EXPIRE_DAYS)
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_admin_token(email: str, name: str) -> str:
    payload = {
        "admin": {"email": email, "name": name},
        "exp": datetime.utcnow() + timedelta(hours=ADMIN_TOKEN_EXPIRE_HOURS)
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Token is not valid")


def extract_token(authorization: Optional[str], x_auth_token: Optional[str]) -> str:
    """Pull the raw token from x-auth-token or an Authorization bearer header"""
    if x_auth_token:
        return x_auth_token
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    raise HTTPException(status_code=401, detail="No token, authorization denied")
