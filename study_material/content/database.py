from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from study_material.config import CONTENT_AUTHOR_ID
from study_material.content.models import Category

# ==================== AUTHOR POPULATION ====================


async def populate_authors(db: AsyncIOMotorDatabase, docs: List[dict]) -> List[dict]:
    """Replace createdBy ids with {_id, username} when the author account exists"""
    author_ids = {doc.get("createdBy") for doc in docs if isinstance(doc.get("createdBy"), ObjectId)}
    if not author_ids:
        return docs

    authors = await db.users.find({"_id": {"$in": list(author_ids)}}, {"username": 1}).to_list(length=None)
    by_id = {a["_id"]: a for a in authors}
    for doc in docs:
        author = by_id.get(doc.get("createdBy"))
        if author:
            doc["createdBy"] = {"_id": author["_id"], "username": author.get("username")}
    return docs


# ==================== CONTENT CRUD ====================


async def create_content(db: AsyncIOMotorDatabase, fields: dict, images: List[dict]) -> dict:
    now = datetime.utcnow()
    doc = {
        **fields,
        "images": images,
        "createdBy": ObjectId(CONTENT_AUTHOR_ID),
        "createdAt": now,
        "updatedAt": now
    }
    result = await db.contents.insert_one(doc)
    doc["_id"] = result.inserted_id
    return (await populate_authors(db, [doc]))[0]


async def get_content(db: AsyncIOMotorDatabase, content_id: ObjectId, populate: bool = True) -> Optional[dict]:
    doc = await db.contents.find_one({"_id": content_id})
    if doc and populate:
        await populate_authors(db, [doc])
    return doc


async def list_contents(
    db: AsyncIOMotorDatabase,
    category: Optional[str] = None,
    sub_topic: Optional[str] = None
) -> List[dict]:
    """List content, newest first"""
    query = {}
    if category:
        query["category"] = category.upper()
    if sub_topic:
        query["subTopic"] = sub_topic

    docs = await db.contents.find(query).sort("createdAt", -1).to_list(length=None)
    return await populate_authors(db, docs)


async def update_content(db: AsyncIOMotorDatabase, content_id: ObjectId, updates: dict) -> Optional[dict]:
    updates["updatedAt"] = datetime.utcnow()
    doc = await db.contents.find_one_and_update(
        {"_id": content_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if doc:
        await populate_authors(db, [doc])
    return doc


async def delete_content(db: AsyncIOMotorDatabase, content_id: ObjectId) -> bool:
    result = await db.contents.delete_one({"_id": content_id})
    await db.userprogresses.delete_many({"contentId": content_id})
    return result.deleted_count > 0


# ==================== AGGREGATES ====================


async def category_tree(db: AsyncIOMotorDatabase) -> List[dict]:
    """[{_id: category, subTopics: [{name, count}]}] sorted by category"""
    pipeline = [
        {"$group": {
            "_id": {"category": "$category", "subTopic": "$subTopic"},
            "count": {"$sum": 1}
        }},
        {"$group": {
            "_id": "$_id.category",
            "subTopics": {"$push": {"name": "$_id.subTopic", "count": "$count"}}
        }},
        {"$sort": {"_id": 1}}
    ]
    return await db.contents.aggregate(pipeline).to_list(length=None)


async def content_stats(db: AsyncIOMotorDatabase) -> dict:
    """Admin dashboard counters"""
    sub_topics = await db.contents.distinct("subTopic")
    return {
        "totalContent": await db.contents.count_documents({}),
        "dsaContent": await db.contents.count_documents({"category": Category.DSA.value}),
        "oopContent": await db.contents.count_documents({"category": Category.OOP.value}),
        "uniqueTopics": len(sub_topics)
    }
