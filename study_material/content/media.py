"""
Cloudinary image storage for content items

Uploads go to a single folder with a bounded-size delivery transformation;
Cloudinary does all resizing and format negotiation.
"""

import io
import logging
import os
import time
from datetime import datetime
from typing import List, Optional, Tuple

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from fastapi import HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from study_material.config import (
    CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET, CLOUDINARY_FOLDER, MAX_IMAGE_BYTES
)

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=CLOUDINARY_CLOUD_NAME,
    api_key=CLOUDINARY_API_KEY,
    api_secret=CLOUDINARY_API_SECRET,
    secure=True
)

ALLOWED_FORMATS = ["jpg", "jpeg", "png", "gif", "webp"]

UPLOAD_TRANSFORMATION = [{
    "width": 1200,
    "height": 800,
    "crop": "limit",
    "quality": "auto:good",
    "fetch_format": "auto"
}]

DEFAULT_DELIVERY_OPTIONS = {
    "width": 800,
    "height": 600,
    "crop": "fill",
    "quality": "auto:good",
    "fetch_format": "auto"
}


def build_public_id(original_name: str) -> str:
    """'graph.png' -> 'graph_1718000000000'"""
    stem = os.path.basename(original_name or "image").split(".")[0] or "image"
    return f"{stem}_{int(time.time() * 1000)}"


def image_document(result: dict, original_name: str) -> dict:
    """Shape a Cloudinary upload result into a stored content image"""
    return {
        "filename": result.get("public_id"),
        "originalName": original_name,
        "url": result.get("secure_url"),
        "path": result.get("secure_url"),
        "publicId": result.get("public_id"),
        "cloudinaryData": {
            "public_id": result.get("public_id"),
            "secure_url": result.get("secure_url"),
            "width": result.get("width"),
            "height": result.get("height"),
            "format": result.get("format"),
            "resource_type": result.get("resource_type"),
            "bytes": result.get("bytes"),
            "created_at": result.get("created_at")
        },
        "uploadDate": datetime.utcnow()
    }


async def read_image(file: UploadFile) -> bytes:
    """Type and size checks for one upload, returning its bytes"""
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are allowed!")

    data = await file.read()
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail=f"Image {file.filename} exceeds the 5MB limit")
    return data


async def upload_image_bytes(data: bytes, original_name: str, folder: str = CLOUDINARY_FOLDER) -> dict:
    result = await run_in_threadpool(
        cloudinary.uploader.upload,
        io.BytesIO(data),
        folder=folder,
        public_id=build_public_id(original_name),
        allowed_formats=ALLOWED_FORMATS,
        transformation=UPLOAD_TRANSFORMATION,
        resource_type="image"
    )
    return image_document(result, original_name)


async def upload_images(files: List[UploadFile], limit: int) -> List[dict]:
    """
    Upload a request's images, all or nothing.

    Every file is checked before the first upload. If an upload fails, the
    images already stored for this request are destroyed again.
    """
    files = [f for f in files or [] if f.filename]
    if len(files) > limit:
        raise HTTPException(status_code=400, detail=f"Too many images. Max {limit} allowed.")

    checked = [(f.filename, await read_image(f)) for f in files]

    uploaded = []
    try:
        for name, data in checked:
            uploaded.append(await upload_image_bytes(data, name))
    except Exception:
        await discard_images(uploaded)
        raise
    return uploaded


async def upload_base64_image(data_uri: str, folder: str = CLOUDINARY_FOLDER) -> dict:
    try:
        return await run_in_threadpool(
            cloudinary.uploader.upload,
            data_uri,
            folder=folder,
            transformation=UPLOAD_TRANSFORMATION
        )
    except Exception:
        logger.exception("Error uploading base64 image to Cloudinary")
        raise


async def delete_image(public_id: str) -> dict:
    try:
        return await run_in_threadpool(cloudinary.uploader.destroy, public_id)
    except Exception:
        logger.exception("Error deleting image from Cloudinary: %s", public_id)
        raise


async def delete_images_quietly(public_ids: List[str]) -> None:
    """Best-effort cleanup; a failed destroy never blocks a content change"""
    for public_id in public_ids:
        try:
            await delete_image(public_id)
            logger.info("Deleted image from Cloudinary: %s", public_id)
        except Exception:
            continue


async def discard_images(images: List[dict]) -> None:
    """Destroy freshly uploaded images whose content was never saved"""
    public_ids = [pid for pid in (image_public_id(img) for img in images) if pid]
    if public_ids:
        logger.warning("Rolling back %d uploaded image(s)", len(public_ids))
    await delete_images_quietly(public_ids)


def optimized_image_url(public_id: str, **options) -> str:
    final_options = {**DEFAULT_DELIVERY_OPTIONS, **options}
    url, _ = cloudinary.utils.cloudinary_url(public_id, **final_options)
    return url


# ==================== IMAGE UPDATE PLANNING ====================


def image_url(image) -> Optional[str]:
    if isinstance(image, str):
        return image
    return image.get("url") or image.get("path")


def image_public_id(image) -> Optional[str]:
    if isinstance(image, str):
        return None
    return image.get("publicId") or (image.get("cloudinaryData") or {}).get("public_id")


def _matches(image, url: str) -> bool:
    if isinstance(image, str):
        return image == url
    return (
        image.get("url") == url
        or image.get("path") == url
        or (image.get("cloudinaryData") or {}).get("secure_url") == url
        or f"/uploads/{image.get('filename')}" == url
    )


def plan_image_update(
    current: list,
    keep_urls: List[str],
    deleted_urls: List[str]
) -> Tuple[list, List[str]]:
    """
    Work out which stored images survive an edit.

    Returns (kept image objects, Cloudinary public ids to destroy). A stored
    image is kept when any of its URL forms is in the keep list and none is
    in the deleted list; every other stored image with a public id is
    destroyed. Kept URLs with no stored object become bare {url, path,
    filename} entries.
    """
    deleted = [img for img in current if any(_matches(img, url) for url in deleted_urls)]

    kept = []
    for url in keep_urls:
        if not url or url in deleted_urls:
            continue
        existing = next((img for img in current if _matches(img, url)), None)
        if existing is None:
            kept.append({
                "url": url,
                "path": url,
                "filename": os.path.basename(url) if "/" in url else url
            })
        elif not any(existing is img for img in deleted + kept):
            kept.append(existing)

    to_destroy = []
    for image in current:
        public_id = image_public_id(image)
        if public_id and not any(image is img for img in kept):
            to_destroy.append(public_id)
    return kept, to_destroy
