from __future__ import annotations

import math
from typing import Any, Dict, Union

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..core.dependencies import authorize
from ..core.errors import NotFoundError
from ..core.security import Identity
from ..models.constants import STATS_ADMIN_ROLES
from ..schemas.user import UserStatsInput
from ..utils.clock import Clock, utc_now
from ..utils.mongo import serialize_document, to_object_id

Number = Union[int, float]

INT64_MAX = 2**63 - 1

# Running totals: added to whatever is stored
INCREMENT_FIELDS = ("questionsAnswered", "questionsCorrect", "questionsIncorrect")
# Period snapshots: replace what is stored
SET_FIELDS = ("lifetimePoints", "yearlyPoints", "monthlyPoints", "dailyPoints", "consecutiveLoginDays")


def non_negative(value: Any) -> Number:
    """Coerce loosely typed input to a number.

    Junk, NaN, infinities, negatives and anything too large for a BSON int64
    become 0.
    """
    if isinstance(value, bool):
        value = int(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(number) or number < 0 or number > INT64_MAX:
        return 0
    return int(number) if number.is_integer() else number


async def apply_stats(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    user_id: str,
    stats: UserStatsInput,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    authorize(identity, STATS_ADMIN_ROLES)

    try:
        oid = to_object_id(user_id)
    except ValueError as exc:
        raise NotFoundError("User not found") from exc

    timestamp = now()
    increments: Dict[str, Number] = {field: non_negative(getattr(stats, field)) for field in INCREMENT_FIELDS}
    points = non_negative(stats.pointsEarned)
    if points:
        increments["score"] = points

    updates: Dict[str, Any] = {field: non_negative(getattr(stats, field)) for field in SET_FIELDS}
    updates["lastLoginDate"] = stats.lastLoginDate or timestamp

    operations: Dict[str, Any] = {"$inc": increments, "$set": updates}
    if stats.newBadge is not None:
        badge = stats.newBadge.model_dump(exclude_none=True)
        badge["earnedAt"] = timestamp
        operations["$push"] = {"badges": badge}
    if stats.newSkills:
        operations["$addToSet"] = {"skills": {"$each": list(stats.newSkills)}}

    if points:
        await db.users.update_one({"_id": oid, "score": None}, {"$set": {"score": 0}})

    updated = await db.users.find_one_and_update(
        {"_id": oid},
        operations,
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError("User not found")

    return serialize_document(updated)
