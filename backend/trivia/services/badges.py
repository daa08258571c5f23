from __future__ import annotations

from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..core.dependencies import authorize
from ..core.errors import NotFoundError, UserInputError
from ..core.security import Identity
from ..models.constants import BADGE_ADMIN_ROLES
from ..schemas.badge import BadgeCreate
from ..utils.clock import Clock, utc_now
from ..utils.mongo import serialize_document, to_object_id


def _oid(value: str, what: str):
    try:
        return to_object_id(value)
    except ValueError as exc:
        raise NotFoundError(f"{what} not found") from exc


async def list_badges(db: AsyncIOMotorDatabase) -> List[Dict[str, Any]]:
    cursor = db.badges.find({}).sort("name", 1)
    return [serialize_document(doc) async for doc in cursor]


async def get_badge(db: AsyncIOMotorDatabase, badge_id: str) -> Dict[str, Any]:
    badge = await db.badges.find_one({"_id": _oid(badge_id, "Badge")})
    if not badge:
        raise NotFoundError("Badge not found")
    return serialize_document(badge)


async def create_badge(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    payload: BadgeCreate,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    authorize(identity, BADGE_ADMIN_ROLES)

    if await db.badges.find_one({"name": payload.name}, {"_id": 1}):
        raise UserInputError("A badge with this name already exists")

    doc = {**payload.model_dump(), "createdAt": now()}
    try:
        result = await db.badges.insert_one(doc)
    except DuplicateKeyError as exc:
        raise UserInputError("A badge with this name already exists") from exc
    doc["_id"] = result.inserted_id
    return serialize_document(doc)


async def issue_badge_to_user(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    badge_id: str,
    user_id: str,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    authorize(identity, BADGE_ADMIN_ROLES)

    badge_oid = _oid(badge_id, "Badge")
    user_oid = _oid(user_id, "User")

    badge = await db.badges.find_one({"_id": badge_oid})
    if not badge:
        raise NotFoundError("Badge not found")

    earned = {
        "badgeId": badge_oid,
        "name": badge["name"],
        "description": badge.get("description"),
        "imageUrl": badge.get("imageUrl"),
        "earnedAt": now(),
    }
    # The filter makes the duplicate check and the append a single step
    updated = await db.users.find_one_and_update(
        {"_id": user_oid, "badges.badgeId": {"$ne": badge_oid}},
        {"$push": {"badges": earned}},
        return_document=ReturnDocument.AFTER,
    )
    if updated:
        return serialize_document(updated)

    if await db.users.find_one({"_id": user_oid}, {"_id": 1}):
        raise UserInputError("User already has this badge")
    raise NotFoundError("User not found")
