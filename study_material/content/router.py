import json
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, File, Form, Query, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from study_material.config import MAX_IMAGES_ON_CREATE, MAX_IMAGES_ON_UPDATE
from study_material.content.database import (
    create_content, get_content, list_contents, update_content, delete_content, category_tree
)
from study_material.content.media import (
    upload_images, discard_images, delete_images_quietly, plan_image_update, image_public_id
)
from study_material.content.models import validate_content_fields, split_tags, parse_flag
from study_material.content.search import search_contents
from study_material.database import serialize_mongo, serialize_many, to_object_id
from study_material.dependencies import get_db, get_reader, get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Content"])


def _parse_url_list(raw: Optional[str], field: str) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        logger.error("Error parsing %s: %r", field, raw)
        return []
    if not isinstance(value, list):
        logger.error("Expected a JSON list for %s, got %r", field, raw)
        return []
    return [v for v in value if isinstance(v, str)]


async def _load_content(db: AsyncIOMotorDatabase, content_id: str, populate: bool = True) -> dict:
    oid = to_object_id(content_id)
    content = await get_content(db, oid, populate=populate) if oid else None
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content


# ==================== READ ====================


@router.get("")
async def list_content_endpoint(
    category: Optional[str] = None,
    subTopic: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
    reader: dict = Depends(get_reader)
):
    """Get all content or filter by category / sub-topic"""
    return serialize_many(await list_contents(db, category, subTopic))


@router.get("/categories")
async def list_categories(
    db: AsyncIOMotorDatabase = Depends(get_db),
    reader: dict = Depends(get_reader)
):
    """Get all categories and their sub-topics with counts"""
    return serialize_many(await category_tree(db))


@router.get("/search")
async def search_content(
    q: str = Query(""),
    db: AsyncIOMotorDatabase = Depends(get_db),
    reader: dict = Depends(get_reader)
):
    if not q.strip():
        return []
    items = await list_contents(db)
    return serialize_many(search_contents(items, q))


@router.get("/{content_id}")
async def get_content_endpoint(
    content_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    reader: dict = Depends(get_reader)
):
    return serialize_mongo(await _load_content(db, content_id))


# ==================== WRITE (ADMIN) ====================


@router.post("")
async def create_content_endpoint(
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    subTopic: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    codeExample: Optional[str] = Form(None),
    problemStatement: Optional[str] = Form(None),
    solution: Optional[str] = Form(None),
    difficulty: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    enableCompiler: Optional[str] = Form(None),
    images: List[UploadFile] = File(default=[]),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    """Create new content with up to 5 images"""
    raw = {
        "title": title,
        "category": category,
        "subTopic": subTopic,
        "content": content,
        "codeExample": codeExample,
        "problemStatement": problemStatement,
        "solution": solution,
        "difficulty": difficulty,
        "tags": split_tags(tags),
        "enableCompiler": parse_flag(enableCompiler)
    }
    fields = validate_content_fields({k: v for k, v in raw.items() if v is not None})

    uploaded = []
    try:
        uploaded = await upload_images(images, MAX_IMAGES_ON_CREATE)
        saved = await create_content(db, fields, uploaded)
    except HTTPException:
        raise
    except Exception as e:
        await discard_images(uploaded)
        logger.exception("Content upload error (admin=%s, files=%d)", admin.get("email"), len(images or []))
        raise HTTPException(status_code=500, detail={
            "message": "Failed to upload content",
            "error": str(e)
        })

    logger.info("Content created: %s (%s/%s)", saved["title"], saved["category"], saved["subTopic"])
    return serialize_mongo(saved)


@router.put("/{content_id}")
async def update_content_endpoint(
    content_id: str,
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    subTopic: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    codeExample: Optional[str] = Form(None),
    problemStatement: Optional[str] = Form(None),
    solution: Optional[str] = Form(None),
    difficulty: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    enableCompiler: Optional[str] = Form(None),
    existingImages: Optional[str] = Form(None),
    deletedImages: Optional[str] = Form(None),
    images: List[UploadFile] = File(default=[]),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    """
    Update content (admin only)
    Fields that are not sent keep their stored values
    """
    if not title or not category or not subTopic:
        raise HTTPException(status_code=400, detail="Title, category, and subTopic are required")

    current = await _load_content(db, content_id, populate=False)

    # Validate against the stored document so partial edits keep other fields
    merged = {
        "title": title,
        "category": category,
        "subTopic": subTopic,
        "content": content if content is not None else current.get("content"),
        "codeExample": codeExample if codeExample is not None else current.get("codeExample"),
        "problemStatement": problemStatement if problemStatement is not None else current.get("problemStatement"),
        "solution": solution if solution is not None else current.get("solution"),
        "difficulty": difficulty if difficulty is not None else current.get("difficulty"),
        "tags": split_tags(tags) if tags is not None else current.get("tags", []),
        "enableCompiler": parse_flag(enableCompiler) if enableCompiler is not None else current.get("enableCompiler", False)
    }
    fields = validate_content_fields({k: v for k, v in merged.items() if v is not None})

    keep_urls = _parse_url_list(existingImages, "existingImages")
    deleted_urls = _parse_url_list(deletedImages, "deletedImages")
    kept, to_destroy = plan_image_update(current.get("images") or [], keep_urls, deleted_urls)

    try:
        new_images = await upload_images(images, MAX_IMAGES_ON_UPDATE)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Content update error (admin=%s, content=%s)", admin.get("email"), content_id)
        raise HTTPException(status_code=500, detail={
            "message": "Failed to update content",
            "error": str(e)
        })

    try:
        updated = await update_content(db, current["_id"], {**fields, "images": kept + new_images})
    except Exception as e:
        await discard_images(new_images)
        logger.exception("Content update error (admin=%s, content=%s)", admin.get("email"), content_id)
        raise HTTPException(status_code=500, detail={
            "message": "Failed to update content",
            "error": str(e)
        })
    if not updated:
        await discard_images(new_images)
        raise HTTPException(status_code=404, detail="Content not found")

    # old assets go only once the document no longer references them
    await delete_images_quietly(to_destroy)

    logger.info(
        "Content %s images: kept=%d deleted=%d new=%d",
        content_id, len(kept), len(to_destroy), len(new_images)
    )
    return serialize_mongo(updated)


@router.delete("/{content_id}")
async def delete_content_endpoint(
    content_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(get_current_admin)
):
    current = await _load_content(db, content_id, populate=False)

    public_ids = [pid for pid in (image_public_id(img) for img in current.get("images") or []) if pid]
    await delete_images_quietly(public_ids)

    await delete_content(db, current["_id"])
    return {"message": "Content deleted successfully"}
