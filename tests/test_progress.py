from datetime import date, datetime, timedelta

from bson import ObjectId
from httpx import AsyncClient

from study_material.progress.database import learning_streak, percent


def test_percent_rounds_half_up():
    assert percent(0, 0) == 0
    assert percent(1, 3) == 33
    assert percent(2, 3) == 67
    assert percent(1, 8) == 13
    assert percent(5, 5) == 100


def test_streak_counts_consecutive_days():
    today = date(2024, 3, 10)
    activity = [
        datetime(2024, 3, 10, 9),
        datetime(2024, 3, 10, 18),
        datetime(2024, 3, 9, 12),
        datetime(2024, 3, 8, 7),
        datetime(2024, 3, 5, 7)
    ]
    assert learning_streak(activity, today=today) == 3


def test_streak_may_start_yesterday():
    today = date(2024, 3, 10)
    assert learning_streak([datetime(2024, 3, 9), datetime(2024, 3, 8)], today=today) == 2


def test_streak_broken_by_gap():
    today = date(2024, 3, 10)
    assert learning_streak([datetime(2024, 3, 7)], today=today) == 0
    assert learning_streak([], today=today) == 0


async def test_toggle_creates_then_flips(client: AsyncClient, db, approved_user, user_headers, make_content):
    item = await make_content()

    response = await client.post("/api/progress/toggle", headers=user_headers, json={"contentId": str(item["_id"])})
    assert response.status_code == 200
    data = response.json()
    assert data["contentId"] == str(item["_id"])
    assert data["completed"] is True
    assert data["completedAt"] is not None

    stored = await db.userprogresses.find_one({"userId": approved_user["_id"]})
    assert stored["category"] == "DSA"
    assert stored["subtopic"] == "Searching"

    response = await client.post("/api/progress/toggle", headers=user_headers, json={"contentId": str(item["_id"])})
    assert response.json()["completed"] is False
    assert response.json()["completedAt"] is None
    assert await db.userprogresses.count_documents({}) == 1


async def test_toggle_validation(client: AsyncClient, user_headers):
    response = await client.post("/api/progress/toggle", headers=user_headers, json={})
    assert response.status_code == 400
    assert response.json()["message"] == "Content ID is required"

    response = await client.post("/api/progress/toggle", headers=user_headers, json={"contentId": str(ObjectId())})
    assert response.status_code == 404
    assert response.json()["message"] == "Content not found"


async def test_access_creates_incomplete_record(client: AsyncClient, db, approved_user, user_headers, make_content):
    item = await make_content()

    response = await client.post("/api/progress/access", headers=user_headers, json={"contentId": str(item["_id"])})
    assert response.status_code == 200
    assert response.json() == {"message": "Access recorded"}

    stored = await db.userprogresses.find_one({"userId": approved_user["_id"], "contentId": item["_id"]})
    assert stored["completed"] is False
    assert stored["lastAccessed"] is not None

    # access after completion keeps the completion
    await client.post("/api/progress/toggle", headers=user_headers, json={"contentId": str(item["_id"])})
    await client.post("/api/progress/access", headers=user_headers, json={"contentId": str(item["_id"])})
    stored = await db.userprogresses.find_one({"userId": approved_user["_id"], "contentId": item["_id"]})
    assert stored["completed"] is True
    assert await db.userprogresses.count_documents({}) == 1


async def test_stats(client: AsyncClient, db, approved_user, user_headers, make_content):
    stack = await make_content(title="Stack", category="DSA", sub_topic="Stacks")
    await make_content(title="Queue", category="DSA", sub_topic="Queues")
    await make_content(title="Classes", category="OOP", sub_topic="Basics")

    await client.post("/api/progress/toggle", headers=user_headers, json={"contentId": str(stack["_id"])})

    response = await client.get("/api/progress/stats", headers=user_headers)

    assert response.status_code == 200
    stats = response.json()
    assert stats["totalContent"] == 3
    assert stats["completedContent"] == 1
    assert stats["overallProgress"] == 33
    assert stats["dsaContent"] == 2
    assert stats["completedDSA"] == 1
    assert stats["dsaProgress"] == 50
    assert stats["oopProgress"] == 0
    assert stats["completedSubtopicsCount"] == 1
    assert stats["learningStreak"] == 1
    assert stats["lastActivity"] is not None


async def test_stats_ignore_old_activity(client: AsyncClient, db, approved_user, user_headers, make_content):
    item = await make_content()
    await db.userprogresses.insert_one({
        "userId": approved_user["_id"],
        "contentId": item["_id"],
        "category": "DSA",
        "subtopic": "Searching",
        "completed": True,
        "lastAccessed": datetime.utcnow() - timedelta(days=45)
    })

    stats = (await client.get("/api/progress/stats", headers=user_headers)).json()

    assert stats["completedContent"] == 1
    assert stats["learningStreak"] == 0
    assert stats["lastActivity"] is None


async def test_category_progress(client: AsyncClient, user_headers, make_content):
    queue = await make_content(title="Queue", category="DSA", sub_topic="Queues")
    await make_content(title="Array", category="DSA", sub_topic="Arrays")
    await make_content(title="Classes", category="OOP", sub_topic="Basics")

    await client.post("/api/progress/toggle", headers=user_headers, json={"contentId": str(queue["_id"])})

    response = await client.get("/api/progress/content/dsa", headers=user_headers)

    assert response.status_code == 200
    items = response.json()
    assert [i["title"] for i in items] == ["Array", "Queue"]
    assert [i["completed"] for i in items] == [False, True]
    assert items[0]["progress"] is None
    assert items[1]["progress"]["contentId"] == str(queue["_id"])


async def test_category_progress_invalid(client: AsyncClient, user_headers):
    response = await client.get("/api/progress/content/networking", headers=user_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid category"


async def test_progress_requires_user_token(client: AsyncClient, admin_headers):
    response = await client.get("/api/progress/stats", headers=admin_headers)
    assert response.status_code == 401
