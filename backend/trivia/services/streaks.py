"""Consecutive-login tracking.

The streak only cares about calendar days (UTC). Logging in twice on the same
day leaves the count alone, logging in the day after extends it, and anything
else (a gap, no previous login, or a last-login date in the future) starts a
new streak of one.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..core.dependencies import authorize
from ..core.errors import NotFoundError
from ..core.security import Identity
from ..models.constants import STREAK_ADMIN_ROLES
from ..utils.clock import Clock, as_utc, utc_now
from ..utils.mongo import serialize_document, to_object_id

logger = logging.getLogger(__name__)

MAX_STREAK_ATTEMPTS = 5


def days_between(earlier: datetime, later: datetime) -> int:
    return (as_utc(later).date() - as_utc(earlier).date()).days


def next_login_streak(last_login: Optional[datetime], streak: int, now: datetime) -> int:
    if last_login is None:
        return 1
    days = days_between(last_login, now)
    if days == 0:
        return streak
    if days == 1:
        return streak + 1
    return 1


async def update_login_streak(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    user_id: str,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    if identity.id != user_id:
        authorize(identity, STREAK_ADMIN_ROLES)

    try:
        oid = to_object_id(user_id)
    except ValueError as exc:
        raise NotFoundError("User not found") from exc

    for attempt in range(MAX_STREAK_ATTEMPTS):
        user = await db.users.find_one({"_id": oid}, {"lastLoginDate": 1, "consecutiveLoginDays": 1})
        if not user:
            raise NotFoundError("User not found")

        last_login = user.get("lastLoginDate")
        current = int(user.get("consecutiveLoginDays") or 0)
        timestamp = now()
        streak = next_login_streak(last_login, current, timestamp)

        query: Dict[str, Any] = {"_id": oid}
        if attempt < MAX_STREAK_ATTEMPTS - 1:
            # Only apply if nobody else recorded a login since we read the document
            query["lastLoginDate"] = last_login
            query["consecutiveLoginDays"] = user.get("consecutiveLoginDays")
        else:
            logger.warning("Login streak for %s kept changing; applying last computed value", user_id)

        updated = await db.users.find_one_and_update(
            query,
            {"$set": {"lastLoginDate": timestamp, "consecutiveLoginDays": streak}},
            return_document=ReturnDocument.AFTER,
        )
        if updated:
            return serialize_document(updated)
        logger.debug("Login streak for %s changed concurrently, retrying", user_id)

    raise NotFoundError("User not found")
