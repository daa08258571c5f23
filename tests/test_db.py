# tests/test_db.py
import pytest
from pymongo.errors import DuplicateKeyError

from trivia.db import mongo
from trivia.db.mongo import ensure_indexes


async def test_ensure_indexes_enforces_unique_emails(db):
    await ensure_indexes(db)

    await db.users.insert_one({"email": "a@example.com", "username": "alpha"})
    with pytest.raises(DuplicateKeyError):
        await db.users.insert_one({"email": "a@example.com", "username": "beta"})


async def test_users_without_username_do_not_collide(db):
    await ensure_indexes(db)

    await db.users.insert_one({"email": "g1@example.com", "googleId": "g-1"})
    await db.users.insert_one({"email": "g2@example.com", "googleId": "g-2"})

    assert await db.users.count_documents({}) == 2


async def test_ensure_indexes_is_repeatable(db):
    await ensure_indexes(db)
    await ensure_indexes(db)

    await db.badges.insert_one({"name": "Streaker"})
    with pytest.raises(DuplicateKeyError):
        await db.badges.insert_one({"name": "Streaker"})


def test_database_must_be_connected_first(monkeypatch):
    monkeypatch.setattr(mongo, "_db", None)

    with pytest.raises(RuntimeError):
        mongo.get_database()
