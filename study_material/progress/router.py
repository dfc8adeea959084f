from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from study_material.content.database import get_content
from study_material.content.models import Category
from study_material.database import serialize_mongo, serialize_many, to_object_id
from study_material.dependencies import get_db, get_current_user
from study_material.progress.database import (
    progress_stats, content_with_progress, toggle_completion, record_access
)

router = APIRouter(tags=["Progress"])


class ContentRef(BaseModel):
    contentId: Optional[str] = None


def _user_oid(current: dict):
    user_id = to_object_id(current["id"])
    if not user_id:
        raise HTTPException(status_code=401, detail="Token is not valid")
    return user_id


async def _require_content(db: AsyncIOMotorDatabase, payload: ContentRef) -> dict:
    if not payload.contentId:
        raise HTTPException(status_code=400, detail="Content ID is required")
    content_id = to_object_id(payload.contentId)
    content = await get_content(db, content_id, populate=False) if content_id else None
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content


@router.get("/stats")
async def get_stats(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current: dict = Depends(get_current_user)
):
    return await progress_stats(db, _user_oid(current))


@router.get("/content/{category}")
async def get_category_progress(
    category: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current: dict = Depends(get_current_user)
):
    category = category.upper()
    if category not in {c.value for c in Category}:
        raise HTTPException(status_code=400, detail="Invalid category")

    items = await content_with_progress(db, _user_oid(current), category)
    return serialize_many(items)


@router.post("/toggle")
async def toggle_progress(
    payload: ContentRef,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current: dict = Depends(get_current_user)
):
    content = await _require_content(db, payload)
    progress = await toggle_completion(db, _user_oid(current), content)

    return serialize_mongo({
        "contentId": payload.contentId,
        "completed": progress["completed"],
        "completedAt": progress.get("completedAt")
    })


@router.post("/access")
async def record_content_access(
    payload: ContentRef,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current: dict = Depends(get_current_user)
):
    content = await _require_content(db, payload)
    await record_access(db, _user_oid(current), content)
    return {"message": "Access recorded"}
