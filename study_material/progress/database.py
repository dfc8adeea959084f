from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from study_material.content.models import Category

STREAK_WINDOW_DAYS = 30


def percent(done: int, total: int) -> int:
    if total <= 0:
        return 0
    # half-up like Math.round, not banker's rounding
    return int(done * 100 / total + 0.5)


def learning_streak(activity: Iterable[datetime], today: Optional[date] = None) -> int:
    """
    Count consecutive active days ending today or yesterday.

    Days are walked newest first; a day equal to the cursor or the day before
    it extends the streak and moves the cursor to the day before that day.
    """
    today = today or datetime.utcnow().date()
    days = sorted({moment.date() for moment in activity}, reverse=True)

    streak = 0
    cursor = today
    for day in days:
        if day == cursor or day == cursor - timedelta(days=1):
            streak += 1
            cursor = day - timedelta(days=1)
        else:
            break
    return streak


# ==================== PROGRESS CRUD ====================


async def get_progress(db: AsyncIOMotorDatabase, user_id: ObjectId, content_id: ObjectId) -> Optional[dict]:
    return await db.userprogresses.find_one({"userId": user_id, "contentId": content_id})


async def toggle_completion(db: AsyncIOMotorDatabase, user_id: ObjectId, content: dict) -> dict:
    """Flip completion; the first toggle creates the record as completed"""
    now = datetime.utcnow()
    progress = await get_progress(db, user_id, content["_id"])

    if progress:
        completed = not progress.get("completed", False)
        updates = {
            "completed": completed,
            "completedAt": now if completed else None,
            "lastAccessed": now,
            "updatedAt": now
        }
        await db.userprogresses.update_one({"_id": progress["_id"]}, {"$set": updates})
        progress.update(updates)
        return progress

    progress = {
        "userId": user_id,
        "contentId": content["_id"],
        "category": content["category"],
        "subtopic": content.get("subTopic") or "General",
        "completed": True,
        "completedAt": now,
        "lastAccessed": now,
        "createdAt": now,
        "updatedAt": now
    }
    result = await db.userprogresses.insert_one(progress)
    progress["_id"] = result.inserted_id
    return progress


async def record_access(db: AsyncIOMotorDatabase, user_id: ObjectId, content: dict) -> None:
    now = datetime.utcnow()
    await db.userprogresses.update_one(
        {"userId": user_id, "contentId": content["_id"]},
        {
            "$set": {"lastAccessed": now, "updatedAt": now},
            "$setOnInsert": {
                "category": content["category"],
                "subtopic": content.get("subTopic") or "General",
                "completed": False,
                "completedAt": None,
                "createdAt": now
            }
        },
        upsert=True
    )


async def list_user_progress(db: AsyncIOMotorDatabase, user_id: ObjectId, category: Optional[str] = None) -> List[dict]:
    query = {"userId": user_id}
    if category:
        query["category"] = category
    return await db.userprogresses.find(query).to_list(length=None)


# ==================== STATS ====================


async def progress_stats(db: AsyncIOMotorDatabase, user_id: ObjectId) -> dict:
    total = await db.contents.count_documents({})
    dsa_total = await db.contents.count_documents({"category": Category.DSA.value})
    oop_total = await db.contents.count_documents({"category": Category.OOP.value})

    progress = await list_user_progress(db, user_id)
    completed = [p for p in progress if p.get("completed")]
    completed_dsa = sum(1 for p in completed if p.get("category") == Category.DSA.value)
    completed_oop = sum(1 for p in completed if p.get("category") == Category.OOP.value)
    completed_subtopics = {p.get("subtopic") for p in completed}

    since = datetime.utcnow() - timedelta(days=STREAK_WINDOW_DAYS)
    recent = await db.userprogresses.find(
        {"userId": user_id, "lastAccessed": {"$gte": since}}
    ).sort("lastAccessed", -1).to_list(length=None)

    return {
        "totalContent": total,
        "completedContent": len(completed),
        "overallProgress": percent(len(completed), total),
        "dsaContent": dsa_total,
        "completedDSA": completed_dsa,
        "dsaProgress": percent(completed_dsa, dsa_total),
        "oopContent": oop_total,
        "completedOOP": completed_oop,
        "oopProgress": percent(completed_oop, oop_total),
        "completedSubtopicsCount": len(completed_subtopics),
        "learningStreak": learning_streak(p["lastAccessed"] for p in recent),
        "lastActivity": recent[0]["lastAccessed"] if recent else None
    }


async def content_with_progress(db: AsyncIOMotorDatabase, user_id: ObjectId, category: str) -> List[dict]:
    contents = await db.contents.find({"category": category}).sort("title", 1).to_list(length=None)
    progress_by_content = {p["contentId"]: p for p in await list_user_progress(db, user_id, category)}

    result = []
    for item in contents:
        progress = progress_by_content.get(item["_id"])
        result.append({
            **item,
            "progress": progress,
            "completed": bool(progress and progress.get("completed"))
        })
    return result
