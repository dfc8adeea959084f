from typing import Optional

from fastapi import Header, HTTPException

from study_material.auth.auth_utils import decode_token, extract_token
from study_material.database import get_db, get_db_instance  # noqa: F401

# ==================== DEPENDENCY FUNCTIONS ====================


def get_token_payload(
    authorization: Optional[str] = Header(None),
    x_auth_token: Optional[str] = Header(None)
) -> dict:
    token = extract_token(authorization, x_auth_token)
    return decode_token(token)


def get_current_user(
    authorization: Optional[str] = Header(None),
    x_auth_token: Optional[str] = Header(None)
) -> dict:
    """
    Learner token guard
    Returns the {"id", "username", "role"} claim of a user token
    """
    payload = get_token_payload(authorization, x_auth_token)
    user = payload.get("user")
    if not user or not user.get("id"):
        raise HTTPException(status_code=401, detail="Token is not valid")
    return user


def get_current_admin(authorization: Optional[str] = Header(None)) -> dict:
    """
    Admin console guard
    Only the Authorization bearer header carries admin tokens
    """
    token = extract_token(authorization, None)
    payload = decode_token(token)
    admin = payload.get("admin")
    if not admin:
        raise HTTPException(status_code=401, detail="Invalid admin token")
    return admin


def get_reader(
    authorization: Optional[str] = Header(None),
    x_auth_token: Optional[str] = Header(None)
) -> dict:
    """Content can be read by learners and by the admin console"""
    payload = get_token_payload(authorization, x_auth_token)
    if not payload.get("user") and not payload.get("admin"):
        raise HTTPException(status_code=401, detail="Token is not valid")
    return payload
