# tests/test_badges.py
from datetime import datetime, timezone

import pytest

from trivia.core.errors import ForbiddenError, NotFoundError, UserInputError
from trivia.schemas.badge import BadgeCreate
from trivia.services import badges as badge_service

NOW = datetime(2023, 6, 1, tzinfo=timezone.utc)

STREAKER = BadgeCreate(name="Streaker", description="Seven days in a row", imageUrl="https://img.example.com/s.png")


async def test_create_and_list_badges(db, make_user):
    _, admin = await make_user("boss", role="ADMIN")

    created = await badge_service.create_badge(db, admin, STREAKER, now=lambda: NOW)

    assert created["name"] == "Streaker"
    assert (await badge_service.get_badge(db, created["id"]))["description"] == "Seven days in a row"
    assert [badge["name"] for badge in await badge_service.list_badges(db)] == ["Streaker"]


async def test_badge_names_are_unique(db, make_user):
    _, admin = await make_user("boss", role="ADMIN")
    await badge_service.create_badge(db, admin, STREAKER)

    with pytest.raises(UserInputError):
        await badge_service.create_badge(db, admin, STREAKER)


async def test_editors_cannot_create_badges(db, make_user):
    _, editor = await make_user("editor", role="EDITOR")

    with pytest.raises(ForbiddenError):
        await badge_service.create_badge(db, editor, STREAKER)


async def test_issue_badge_once(db, make_user):
    target, _ = await make_user("target")
    _, admin = await make_user("boss", role="SUPER_ADMIN")
    badge = await badge_service.create_badge(db, admin, STREAKER)

    user = await badge_service.issue_badge_to_user(db, admin, badge["id"], str(target["_id"]), now=lambda: NOW)

    assert len(user["badges"]) == 1
    assert user["badges"][0]["badgeId"] == badge["id"]
    assert user["badges"][0]["earnedAt"].startswith("2023-06-01")

    with pytest.raises(UserInputError):
        await badge_service.issue_badge_to_user(db, admin, badge["id"], str(target["_id"]))
    stored = await db.users.find_one({"_id": target["_id"]})
    assert len(stored["badges"]) == 1


async def test_issue_badge_not_found(db, make_user):
    target, _ = await make_user("target")
    _, admin = await make_user("boss", role="ADMIN")
    badge = await badge_service.create_badge(db, admin, STREAKER)

    with pytest.raises(NotFoundError):
        await badge_service.issue_badge_to_user(db, admin, "64a000000000000000000009", str(target["_id"]))
    with pytest.raises(NotFoundError):
        await badge_service.issue_badge_to_user(db, admin, badge["id"], "64a000000000000000000009")


async def test_get_unknown_badge(db):
    with pytest.raises(NotFoundError):
        await badge_service.get_badge(db, "garbage")
