import logging

from fastapi import APIRouter, HTTPException, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from study_material.auth.auth_utils import hash_password, verify_password, create_user_token
from study_material.dependencies import get_db, get_current_user
from study_material.database import serialize_mongo, to_object_id
from study_material.users.database import (
    create_user, find_user_by_login, get_user, touch_last_login, delete_user,
    is_blocked, is_approved, is_admin
)
from study_material.users.models import RegisterRequest, LoginRequest, ApprovalStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

DUPLICATE_USER_MESSAGE = "User already exists with this email or username"


def _approval_message(user: dict) -> str:
    if user.get("approvalStatus") == ApprovalStatus.REJECTED.value:
        reason = user.get("rejectionReason")
        if reason:
            return f"Your account was rejected. Reason: {reason}"
        return "Your account was rejected by admin."
    return "Your account is pending admin approval."


@router.post("/register", status_code=201)
async def register(payload: RegisterRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Register a learner; the account stays pending until an admin approves it"""
    block = await is_blocked(db, payload.username, payload.email)
    if block["blocked"]:
        logger.warning("Blocked registration attempt: %s (%s)", payload.username, payload.email)
        raise HTTPException(status_code=403, detail={
            "message": "Registration is not allowed for this account.",
            "reason": block["reason"]
        })

    if await find_user_by_login(db, payload.email, payload.username):
        raise HTTPException(status_code=400, detail=DUPLICATE_USER_MESSAGE)

    try:
        user = await create_user(db, payload.username, payload.email, hash_password(payload.password))
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=DUPLICATE_USER_MESSAGE)

    return {
        "message": "Registration successful! Your account is pending admin approval. "
                   "You will be able to login once approved.",
        "user": {
            "id": str(user["_id"]),
            "username": user["username"],
            "email": user["email"],
            "approvalStatus": user["approvalStatus"]
        }
    }


@router.post("/login")
async def login(payload: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await db.users.find_one({"email": payload.email})
    if not user or not verify_password(payload.password, user["password"]):
        raise HTTPException(status_code=400, detail="Invalid credentials")

    # Admin accounts skip the approval gate
    if not is_admin(user) and not is_approved(user):
        raise HTTPException(status_code=403, detail={
            "message": _approval_message(user),
            "approvalStatus": user.get("approvalStatus")
        })

    await touch_last_login(db, user["_id"])

    return {
        "token": create_user_token(user),
        "user": {
            "id": str(user["_id"]),
            "username": user["username"],
            "email": user["email"],
            "role": user.get("role")
        }
    }


@router.get("/me")
async def get_me(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current: dict = Depends(get_current_user)
):
    user_id = to_object_id(current["id"])
    user = await get_user(db, user_id) if user_id else None

    # Deleted accounts must log out
    if not user:
        raise HTTPException(status_code=401, detail="User not found. Please login again.")

    # Approval may have been revoked after the token was issued
    if not is_admin(user) and not is_approved(user):
        raise HTTPException(status_code=403, detail={
            "message": "Account access revoked. Please contact admin.",
            "approvalStatus": user.get("approvalStatus")
        })

    return serialize_mongo(user)


@router.delete("/delete-account")
async def delete_account(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current: dict = Depends(get_current_user)
):
    user_id = to_object_id(current["id"])
    user = await get_user(db, user_id) if user_id else None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if is_admin(user):
        raise HTTPException(status_code=400, detail="Admin accounts cannot be self-deleted")

    await delete_user(db, user_id)
    logger.info("User self-deleted account: %s (%s)", user["email"], user["username"])

    return {"message": "Account deleted successfully"}
