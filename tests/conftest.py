"""
Study Material API - Test Configuration and Fixtures
"""
import os
from datetime import datetime
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

# Set testing environment before the app reads its config
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CLOUDINARY_CLOUD_NAME"] = "demo"
os.environ["CLOUDINARY_API_KEY"] = "test-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret"

from study_material.main import app  # noqa: E402
from study_material.auth.auth_utils import hash_password, create_user_token, create_admin_token  # noqa: E402
from study_material.config import ADMIN_EMAIL, ADMIN_NAME  # noqa: E402
from study_material.database import get_db  # noqa: E402


@pytest.fixture
def db():
    """Fresh in-memory database per test"""
    return AsyncMongoMockClient()["study-material-test"]


@pytest.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database dependency overridden"""
    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Insert a user document directly, bypassing registration"""
    async def _make_user(
        username="learner",
        email="learner@example.com",
        password="secret123",
        role="user",
        approval_status="approved",
        rejection_reason=None
    ) -> dict:
        now = datetime.utcnow()
        user = {
            "username": username,
            "email": email,
            "password": hash_password(password),
            "role": role,
            "approvalStatus": approval_status,
            "approvedBy": None,
            "approvedAt": None,
            "rejectedAt": None,
            "rejectionReason": rejection_reason,
            "lastLogin": now,
            "createdAt": now,
            "updatedAt": now
        }
        result = await db.users.insert_one(user)
        user["_id"] = result.inserted_id
        return user

    return _make_user


@pytest.fixture
async def approved_user(make_user) -> dict:
    return await make_user()


@pytest.fixture
def user_headers(approved_user) -> dict:
    return {"x-auth-token": create_user_token(approved_user)}


@pytest.fixture
def admin_headers() -> dict:
    token = create_admin_token(ADMIN_EMAIL, ADMIN_NAME)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_content(db):
    """Insert a content document directly"""
    async def _make_content(
        title="Binary Search",
        category="DSA",
        sub_topic="Searching",
        content="Halve the range each step",
        **extra
    ) -> dict:
        now = datetime.utcnow()
        doc = {
            "title": title,
            "category": category,
            "subTopic": sub_topic,
            "content": content,
            "codeExample": "",
            "problemStatement": "",
            "solution": "",
            "difficulty": "Easy",
            "tags": [],
            "enableCompiler": False,
            "images": [],
            "createdAt": now,
            "updatedAt": now,
            **extra
        }
        result = await db.contents.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    return _make_content


@pytest.fixture
def cloudinary_calls(monkeypatch):
    """Replace Cloudinary uploader calls with in-memory fakes"""
    import cloudinary.uploader

    calls = {"upload": [], "destroy": []}

    def fake_upload(file, **options):
        calls["upload"].append(options)
        public_id = f"{options.get('folder', 'study-material')}/{options.get('public_id', 'img')}"
        return {
            "public_id": public_id,
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/{public_id}.png",
            "width": 640,
            "height": 480,
            "format": "png",
            "resource_type": "image",
            "bytes": 1234,
            "created_at": "2024-01-01T00:00:00Z"
        }

    def fake_destroy(public_id, **options):
        calls["destroy"].append(public_id)
        return {"result": "ok"}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    monkeypatch.setattr(cloudinary.uploader, "destroy", fake_destroy)
    return calls
