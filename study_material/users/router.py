import logging
import re

from fastapi import APIRouter, HTTPException, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from study_material.database import serialize_mongo, serialize_many, to_object_id
from study_material.dependencies import get_db, get_current_admin
from study_material.users.database import (
    get_user, list_users, approve_user, reject_user, delete_user,
    add_block, list_blocks, remove_block, is_admin, is_approved
)
from study_material.users.models import ApprovalStatus, BlockRequest, BlockType, RejectRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["User Approval"])


async def _load_learner(db: AsyncIOMotorDatabase, user_id: str, action: str = "modify") -> dict:
    """Fetch a user for an admin action; admin accounts are off limits"""
    oid = to_object_id(user_id)
    user = await get_user(db, oid) if oid else None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if is_admin(user):
        raise HTTPException(status_code=400, detail=f"Cannot {action} admin users")
    return user


@router.get("/pending")
async def pending_users(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    return serialize_many(await list_users(db, ApprovalStatus.PENDING.value))


@router.get("/all")
async def all_users(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    return serialize_many(await list_users(db))


@router.get("/blocked")
async def blocked_users(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    return serialize_many(await list_blocks(db))


@router.delete("/blocked/{block_id}")
async def unblock(
    block_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    oid = to_object_id(block_id)
    if not oid or not await remove_block(db, oid):
        raise HTTPException(status_code=404, detail="Block not found")

    logger.info("Block %s removed by admin: %s", block_id, admin.get("email"))
    return {"message": "Block removed successfully"}


@router.put("/{user_id}/approve")
async def approve(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    user = await _load_learner(db, user_id)
    if is_approved(user):
        raise HTTPException(status_code=400, detail="User is already approved")

    user = await approve_user(db, user["_id"], admin.get("email"))
    logger.info("User approved: %s by admin: %s", user["email"], admin.get("email"))

    return serialize_mongo({
        "message": "User approved successfully",
        "user": {
            "id": str(user["_id"]),
            "username": user["username"],
            "email": user["email"],
            "approvalStatus": user["approvalStatus"],
            "approvedAt": user["approvedAt"]
        }
    })


@router.put("/{user_id}/reject")
async def reject(
    user_id: str,
    payload: RejectRequest = RejectRequest(),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    user = await _load_learner(db, user_id)
    user = await reject_user(db, user["_id"], admin.get("email"), payload.reason)

    return serialize_mongo({
        "message": "User rejected successfully. User cannot login but data remains in database.",
        "user": {
            "id": str(user["_id"]),
            "username": user["username"],
            "email": user["email"],
            "approvalStatus": user["approvalStatus"],
            "rejectedAt": user["rejectedAt"],
            "rejectionReason": user["rejectionReason"]
        }
    })


@router.delete("/{user_id}")
async def remove_user(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    user = await _load_learner(db, user_id, action="delete")
    await delete_user(db, user["_id"])
    logger.info("User deleted: %s by admin: %s", user["email"], admin.get("email"))
    return {"message": "User deleted successfully"}


@router.post("/{user_id}/block")
async def block_user(
    user_id: str,
    payload: BlockRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    """
    Block a learner from ever registering again, then remove the account
    Username and/or email are blocked exactly; extra regex patterns are optional
    """
    if not payload.reason.strip():
        raise HTTPException(status_code=400, detail="Block reason is required")
    if not (payload.block_username or payload.block_email or payload.patterns):
        raise HTTPException(status_code=400, detail="Select at least one identity or pattern to block")
    for pattern in payload.patterns:
        try:
            re.compile(pattern)
        except re.error:
            raise HTTPException(status_code=400, detail=f"Invalid block pattern: {pattern}")

    user = await _load_learner(db, user_id, action="block")
    admin_email = admin.get("email")
    original = {"username": user["username"], "email": user["email"], "userId": str(user["_id"])}
    extra = [{"pattern": p, "type": BlockType.USERNAME.value} for p in payload.patterns]

    blocks = []
    if payload.block_username:
        blocks.append(await add_block(db, user["username"], BlockType.USERNAME.value, original, admin_email, payload.reason, extra))
    if payload.block_email:
        blocks.append(await add_block(db, user["email"], BlockType.EMAIL.value, original, admin_email, payload.reason, extra))
    for pattern in payload.patterns:
        blocks.append(await add_block(db, pattern, BlockType.PATTERN.value, original, admin_email, payload.reason))

    await delete_user(db, user["_id"])
    logger.info("User blocked: %s by admin: %s. Reason: %s", user["email"], admin_email, payload.reason)

    return serialize_mongo({
        "message": "User blocked and account removed",
        "blocks": blocks
    })
