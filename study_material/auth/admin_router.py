import logging

from fastapi import APIRouter, HTTPException, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from study_material.auth.auth_utils import verify_password, create_admin_token
from study_material.config import ADMIN_EMAIL, ADMIN_PASSWORD_HASH, ADMIN_NAME
from study_material.content.database import content_stats
from study_material.dependencies import get_db, get_current_admin
from study_material.users.models import AdminLoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


@router.post("/login")
async def admin_login(payload: AdminLoginRequest):
    """Admin console login against the configured credential"""
    if payload.email != ADMIN_EMAIL or not verify_password(payload.password, ADMIN_PASSWORD_HASH):
        logger.warning("Failed admin login for %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "token": create_admin_token(ADMIN_EMAIL, ADMIN_NAME),
        "admin": {"email": ADMIN_EMAIL, "name": ADMIN_NAME}
    }


@router.get("/verify")
async def verify_admin(admin: dict = Depends(get_current_admin)):
    return {"admin": admin}


@router.get("/stats")
async def admin_stats(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    return await content_stats(db)
