import pytest
from bson import ObjectId
from httpx import AsyncClient


@pytest.fixture
async def pending_user(make_user):
    return await make_user(username="waiting", email="waiting@example.com", approval_status="pending")


async def test_pending_lists_only_pending_learners(client: AsyncClient, admin_headers, pending_user, approved_user, make_user):
    await make_user(username="boss", email="boss@example.com", role="admin", approval_status="pending")

    response = await client.get("/api/users/pending", headers=admin_headers)

    assert response.status_code == 200
    users = response.json()
    assert [u["username"] for u in users] == ["waiting"]
    assert "password" not in users[0]


async def test_all_excludes_admins(client: AsyncClient, admin_headers, pending_user, approved_user, make_user):
    await make_user(username="boss", email="boss@example.com", role="admin")

    response = await client.get("/api/users/all", headers=admin_headers)

    assert response.status_code == 200
    assert sorted(u["username"] for u in response.json()) == ["learner", "waiting"]


async def test_user_admin_routes_need_admin_token(client: AsyncClient, user_headers):
    response = await client.get("/api/users/pending", headers=user_headers)
    assert response.status_code == 401


async def test_approve_user(client: AsyncClient, db, admin_headers, pending_user):
    response = await client.put(f"/api/users/{pending_user['_id']}/approve", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["approvalStatus"] == "approved"
    stored = await db.users.find_one({"_id": pending_user["_id"]})
    assert stored["approvedBy"] == "admin@studymaterial.com"
    assert stored["approvedAt"] is not None

    # approved users can now log in
    response = await client.post("/api/auth/login", json={"email": "waiting@example.com", "password": "secret123"})
    assert response.status_code == 200


async def test_approve_already_approved(client: AsyncClient, admin_headers, approved_user):
    response = await client.put(f"/api/users/{approved_user['_id']}/approve", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "User is already approved"


async def test_approve_unknown_user(client: AsyncClient, admin_headers):
    response = await client.put(f"/api/users/{ObjectId()}/approve", headers=admin_headers)
    assert response.status_code == 404

    response = await client.put("/api/users/not-an-id/approve", headers=admin_headers)
    assert response.status_code == 404


async def test_cannot_modify_admin_accounts(client: AsyncClient, admin_headers, make_user):
    admin = await make_user(username="boss", email="boss@example.com", role="admin")

    response = await client.put(f"/api/users/{admin['_id']}/reject", headers=admin_headers, json={})
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot modify admin users"

    response = await client.delete(f"/api/users/{admin['_id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete admin users"


async def test_reject_user_with_reason(client: AsyncClient, db, admin_headers, approved_user):
    response = await client.put(
        f"/api/users/{approved_user['_id']}/reject",
        headers=admin_headers,
        json={"reason": "not enrolled"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["approvalStatus"] == "rejected"
    assert data["user"]["rejectionReason"] == "not enrolled"

    # data remains, login is refused
    assert await db.users.count_documents({"_id": approved_user["_id"]}) == 1
    response = await client.post("/api/auth/login", json={"email": "learner@example.com", "password": "secret123"})
    assert response.status_code == 403
    assert response.json()["message"] == "Your account was rejected. Reason: not enrolled"


async def test_reject_without_body(client: AsyncClient, admin_headers, pending_user):
    response = await client.put(f"/api/users/{pending_user['_id']}/reject", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["user"]["rejectionReason"] is None


async def test_delete_user_removes_progress(client: AsyncClient, db, admin_headers, approved_user):
    await db.userprogresses.insert_one({"userId": approved_user["_id"], "completed": False})

    response = await client.delete(f"/api/users/{approved_user['_id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "User deleted successfully"
    assert await db.users.count_documents({}) == 0
    assert await db.userprogresses.count_documents({}) == 0


async def test_block_user_prevents_registration(client: AsyncClient, db, admin_headers, approved_user):
    response = await client.post(
        f"/api/users/{approved_user['_id']}/block",
        headers=admin_headers,
        json={"reason": "abusive posts"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "User blocked and account removed"
    assert {b["blockType"] for b in data["blocks"]} == {"username", "email"}
    assert await db.users.count_documents({}) == 0

    response = await client.post(
        "/api/auth/register",
        json={"username": "someone", "email": "LEARNER@example.com", "password": "secret123"}
    )
    assert response.status_code == 403
    assert response.json()["reason"] == "abusive posts"


async def test_block_with_pattern(client: AsyncClient, admin_headers, approved_user):
    response = await client.post(
        f"/api/users/{approved_user['_id']}/block",
        headers=admin_headers,
        json={"reason": "spam ring", "blockEmail": False, "blockUsername": False, "patterns": [r"^spam\d+"]}
    )
    assert response.status_code == 200
    assert [b["blockType"] for b in response.json()["blocks"]] == ["pattern"]

    response = await client.post(
        "/api/auth/register",
        json={"username": "SPAM42", "email": "fresh@example.com", "password": "secret123"}
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/auth/register",
        json={"username": "learner", "email": "learner@example.com", "password": "secret123"}
    )
    assert response.status_code == 201


async def test_block_requires_reason(client: AsyncClient, admin_headers, approved_user):
    response = await client.post(f"/api/users/{approved_user['_id']}/block", headers=admin_headers, json={"reason": "  "})

    assert response.status_code == 400
    assert response.json()["message"] == "Block reason is required"


async def test_block_rejects_bad_pattern(client: AsyncClient, db, admin_headers, approved_user):
    response = await client.post(
        f"/api/users/{approved_user['_id']}/block",
        headers=admin_headers,
        json={"reason": "spam", "patterns": ["[unclosed"]}
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid block pattern")
    assert await db.users.count_documents({}) == 1


async def test_list_and_remove_blocks(client: AsyncClient, admin_headers, approved_user):
    await client.post(f"/api/users/{approved_user['_id']}/block", headers=admin_headers, json={"reason": "spam"})

    response = await client.get("/api/users/blocked", headers=admin_headers)
    assert response.status_code == 200
    blocks = response.json()
    assert len(blocks) == 2

    for block in blocks:
        response = await client.delete(f"/api/users/blocked/{block['_id']}", headers=admin_headers)
        assert response.status_code == 200

    response = await client.delete(f"/api/users/blocked/{blocks[0]['_id']}", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Block not found"

    response = await client.post(
        "/api/auth/register",
        json={"username": "learner", "email": "learner@example.com", "password": "secret123"}
    )
    assert response.status_code == 201


async def test_block_requires_something_to_block(client: AsyncClient, db, admin_headers, approved_user):
    response = await client.post(
        f"/api/users/{approved_user['_id']}/block",
        headers=admin_headers,
        json={"reason": "spam", "blockEmail": False, "blockUsername": False}
    )

    assert response.status_code == 400
    assert await db.users.count_documents({}) == 1
    assert await db.blockedusers.count_documents({}) == 0
