import logging
import re
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from study_material.users.models import ApprovalStatus, BlockType, Role

logger = logging.getLogger(__name__)

# Never send password hashes back to clients
PUBLIC_USER_PROJECTION = {"password": 0}

# ==================== USER CRUD ====================


async def create_user(db: AsyncIOMotorDatabase, username: str, email: str, password_hash: str) -> dict:
    """Create a learner account waiting for admin approval"""
    now = datetime.utcnow()
    user = {
        "username": username,
        "email": email,
        "password": password_hash,
        "role": Role.USER.value,
        "approvalStatus": ApprovalStatus.PENDING.value,
        "approvedBy": None,
        "approvedAt": None,
        "rejectedAt": None,
        "rejectionReason": None,
        "lastLogin": now,
        "createdAt": now,
        "updatedAt": now
    }
    result = await db.users.insert_one(user)
    user["_id"] = result.inserted_id
    return user


async def find_user_by_login(db: AsyncIOMotorDatabase, email: str, username: str) -> Optional[dict]:
    return await db.users.find_one({"$or": [{"email": email}, {"username": username}]})


async def get_user(db: AsyncIOMotorDatabase, user_id: ObjectId, with_password: bool = False) -> Optional[dict]:
    projection = None if with_password else PUBLIC_USER_PROJECTION
    return await db.users.find_one({"_id": user_id}, projection)


async def list_users(db: AsyncIOMotorDatabase, status: Optional[str] = None) -> List[dict]:
    """Learner accounts (never admins), newest first"""
    query = {"role": Role.USER.value}
    if status:
        query["approvalStatus"] = status
    cursor = db.users.find(query, PUBLIC_USER_PROJECTION).sort("createdAt", -1)
    return await cursor.to_list(length=None)


async def touch_last_login(db: AsyncIOMotorDatabase, user_id: ObjectId) -> None:
    now = datetime.utcnow()
    await db.users.update_one({"_id": user_id}, {"$set": {"lastLogin": now, "updatedAt": now}})


async def approve_user(db: AsyncIOMotorDatabase, user_id: ObjectId, admin_email: str) -> dict:
    now = datetime.utcnow()
    return await db.users.find_one_and_update(
        {"_id": user_id},
        {"$set": {
            "approvalStatus": ApprovalStatus.APPROVED.value,
            "approvedBy": admin_email,
            "approvedAt": now,
            "rejectedAt": None,
            "rejectionReason": None,
            "updatedAt": now
        }},
        projection=PUBLIC_USER_PROJECTION,
        return_document=ReturnDocument.AFTER
    )


async def reject_user(db: AsyncIOMotorDatabase, user_id: ObjectId, admin_email: str, reason: Optional[str] = None) -> dict:
    """Rejected accounts stay in the database but can no longer log in"""
    now = datetime.utcnow()
    user = await db.users.find_one_and_update(
        {"_id": user_id},
        {"$set": {
            "approvalStatus": ApprovalStatus.REJECTED.value,
            "rejectedAt": now,
            "rejectionReason": reason,
            "approvedBy": None,
            "approvedAt": None,
            "updatedAt": now
        }},
        projection=PUBLIC_USER_PROJECTION,
        return_document=ReturnDocument.AFTER
    )
    logger.info("User rejected: %s by admin: %s. Reason: %s", user and user["email"], admin_email, reason or "No reason provided")
    return user


async def delete_user(db: AsyncIOMotorDatabase, user_id: ObjectId) -> bool:
    """Delete an account together with its progress records"""
    result = await db.users.delete_one({"_id": user_id})
    await db.userprogresses.delete_many({"userId": user_id})
    return result.deleted_count > 0


def is_approved(user: dict) -> bool:
    return user.get("approvalStatus") == ApprovalStatus.APPROVED.value


def is_admin(user: dict) -> bool:
    return user.get("role") == Role.ADMIN.value


# ==================== BLOCKLIST ====================


async def _record_attempt(db: AsyncIOMotorDatabase, block: dict) -> dict:
    await db.blockedusers.update_one(
        {"_id": block["_id"]},
        {"$inc": {"attemptCount": 1}, "$set": {"lastAttemptAt": datetime.utcnow()}}
    )
    return {
        "blocked": True,
        "reason": block.get("blockReason"),
        "blockedAt": block.get("blockedAt"),
        "blockedBy": block.get("blockedBy")
    }


async def is_blocked(db: AsyncIOMotorDatabase, username: str, email: str) -> dict:
    """
    Check a username/email pair against the blocklist
    Exact username/email blocks win over regex pattern blocks
    """
    exact = await db.blockedusers.find_one({"$or": [
        {"identifier": username.lower(), "blockType": BlockType.USERNAME.value},
        {"identifier": email.lower(), "blockType": BlockType.EMAIL.value}
    ]})
    if exact:
        return await _record_attempt(db, exact)

    patterns = await db.blockedusers.find({"blockType": BlockType.PATTERN.value}).to_list(length=None)
    for block in patterns:
        try:
            pattern = re.compile(block["identifier"], re.IGNORECASE)
        except re.error:
            logger.warning("Skipping invalid block pattern %r", block["identifier"])
            continue
        if pattern.search(username) or pattern.search(email):
            return await _record_attempt(db, block)

    return {"blocked": False}


async def add_block(
    db: AsyncIOMotorDatabase,
    identifier: str,
    block_type: str,
    original_user_info: dict,
    blocked_by: str,
    block_reason: str,
    additional_patterns: Optional[list] = None
) -> dict:
    """Create or refresh a block for an identifier"""
    identifier = identifier.strip()
    # regexes keep their case; \D and \d mean different things
    if block_type != BlockType.PATTERN.value:
        identifier = identifier.lower()
    now = datetime.utcnow()
    return await db.blockedusers.find_one_and_update(
        {"identifier": identifier, "blockType": block_type},
        {
            "$set": {
                "identifier": identifier,
                "blockType": block_type,
                "originalUserInfo": original_user_info,
                "blockedBy": blocked_by,
                "blockReason": block_reason,
                "additionalPatterns": additional_patterns or [],
                "updatedAt": now
            },
            "$inc": {"blockedAccountsCount": 1},
            "$setOnInsert": {
                "blockedAt": now,
                "attemptCount": 0,
                "lastAttemptAt": None,
                "createdAt": now
            }
        },
        upsert=True,
        return_document=ReturnDocument.AFTER
    )


async def list_blocks(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.blockedusers.find({}).sort("blockedAt", -1)
    return await cursor.to_list(length=None)


async def remove_block(db: AsyncIOMotorDatabase, block_id: ObjectId) -> bool:
    result = await db.blockedusers.delete_one({"_id": block_id})
    return result.deleted_count > 0
