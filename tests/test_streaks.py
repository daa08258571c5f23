# tests/test_streaks.py
import logging
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from trivia.core.errors import ForbiddenError, NotFoundError
from trivia.services.streaks import MAX_STREAK_ATTEMPTS, next_login_streak, update_login_streak


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_next_day_extends_streak():
    assert next_login_streak(utc(2023, 5, 15), 7, utc(2023, 5, 16)) == 8


def test_gap_resets_streak():
    assert next_login_streak(utc(2023, 5, 15), 7, utc(2023, 5, 18)) == 1


def test_same_day_keeps_streak():
    assert next_login_streak(utc(2023, 5, 15, 8), 7, utc(2023, 5, 15, 12)) == 7


def test_late_night_then_early_morning_counts_as_next_day():
    assert next_login_streak(utc(2023, 5, 15, 23, 59), 2, utc(2023, 5, 16, 0, 1)) == 3


def test_first_login_starts_streak():
    assert next_login_streak(None, 0, utc(2023, 5, 16)) == 1


def test_last_login_in_future_resets():
    assert next_login_streak(utc(2023, 5, 20), 4, utc(2023, 5, 16)) == 1


def test_naive_store_datetime_treated_as_utc():
    assert next_login_streak(datetime(2023, 5, 15, 22), 1, utc(2023, 5, 16, 1)) == 2


async def test_update_streak_as_admin(db, make_user):
    target, _ = await make_user("target", consecutiveLoginDays=7, lastLoginDate=utc(2023, 5, 15))
    _, admin = await make_user("boss", role="ADMIN")
    now = utc(2023, 5, 16)

    result = await update_login_streak(db, admin, str(target["_id"]), now=lambda: now)

    assert result["consecutiveLoginDays"] == 8
    stored = await db.users.find_one({"_id": target["_id"]})
    assert stored["consecutiveLoginDays"] == 8
    assert stored["lastLoginDate"].replace(tzinfo=timezone.utc) == now


async def test_update_streak_resets_after_gap(db, make_user):
    target, identity = await make_user("target", consecutiveLoginDays=7, lastLoginDate=utc(2023, 5, 15))

    result = await update_login_streak(db, identity, str(target["_id"]), now=lambda: utc(2023, 5, 18))

    assert result["consecutiveLoginDays"] == 1


async def test_update_streak_same_day_touches_date_only(db, make_user):
    target, identity = await make_user("target", consecutiveLoginDays=7, lastLoginDate=utc(2023, 5, 15, 8))
    now = utc(2023, 5, 15, 12)

    result = await update_login_streak(db, identity, str(target["_id"]), now=lambda: now)

    assert result["consecutiveLoginDays"] == 7
    stored = await db.users.find_one({"_id": target["_id"]})
    assert stored["lastLoginDate"].replace(tzinfo=timezone.utc) == now


async def test_user_can_update_own_streak(db, make_user):
    target, identity = await make_user("target")

    result = await update_login_streak(db, identity, str(target["_id"]), now=lambda: utc(2023, 5, 16))

    assert result["consecutiveLoginDays"] == 1


async def test_other_users_streak_is_forbidden(db, make_user):
    target, _ = await make_user("target")
    _, other = await make_user("other")

    with pytest.raises(ForbiddenError):
        await update_login_streak(db, other, str(target["_id"]), now=lambda: utc(2023, 5, 16))


async def test_editor_cannot_update_other_streak(db, make_user):
    target, _ = await make_user("target")
    _, editor = await make_user("editor", role="EDITOR")

    with pytest.raises(ForbiddenError):
        await update_login_streak(db, editor, str(target["_id"]), now=lambda: utc(2023, 5, 16))


async def test_update_streak_unknown_user(db, make_user):
    _, admin = await make_user("boss", role="SUPER_ADMIN")

    with pytest.raises(NotFoundError):
        await update_login_streak(db, admin, "64a000000000000000000009", now=lambda: utc(2023, 5, 16))


class RacingUsers:
    """Runs ``interfere`` against the real collection just before each streak write."""

    def __init__(self, users, interfere):
        self._users = users
        self._interfere = interfere
        self.writes = 0

    async def find_one(self, *args, **kwargs):
        return await self._users.find_one(*args, **kwargs)

    async def find_one_and_update(self, query, update, **kwargs):
        self.writes += 1
        await self._interfere(self._users, query["_id"], self.writes)
        return await self._users.find_one_and_update(query, update, **kwargs)


async def test_lost_race_is_recomputed_from_fresh_read(db, make_user):
    target, identity = await make_user("target", consecutiveLoginDays=7, lastLoginDate=utc(2023, 5, 15))

    async def admin_sets_streak(users, oid, write):
        if write == 1:
            await users.update_one({"_id": oid}, {"$set": {"consecutiveLoginDays": 20}})

    racing = SimpleNamespace(users=RacingUsers(db.users, admin_sets_streak))
    result = await update_login_streak(racing, identity, str(target["_id"]), now=lambda: utc(2023, 5, 16))

    assert racing.users.writes == 2
    assert result["consecutiveLoginDays"] == 21
    assert (await db.users.find_one({"_id": target["_id"]}))["consecutiveLoginDays"] == 21


async def test_streak_applied_after_repeated_races(db, make_user, caplog):
    target, identity = await make_user("target", consecutiveLoginDays=7, lastLoginDate=utc(2023, 5, 15))

    async def always_bump(users, oid, write):
        await users.update_one({"_id": oid}, {"$inc": {"consecutiveLoginDays": 1}})

    racing = SimpleNamespace(users=RacingUsers(db.users, always_bump))
    with caplog.at_level(logging.WARNING, logger="trivia"):
        result = await update_login_streak(racing, identity, str(target["_id"]), now=lambda: utc(2023, 5, 16))

    assert racing.users.writes == MAX_STREAK_ATTEMPTS
    assert result["consecutiveLoginDays"] == 12
    assert "kept changing" in caplog.text
