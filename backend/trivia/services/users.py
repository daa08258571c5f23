from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..core.dependencies import authorize
from ..core.errors import AuthenticationError, ForbiddenError, NotFoundError, UserInputError, ValidationError
from ..core.security import Identity, TokenCodec, get_password_hash, sanitize_text_field, verify_password
from ..models.constants import ROLE_SUPER_ADMIN, ROLE_USER, USER_ADMIN_ROLES, USER_ROLES
from ..schemas.auth import RegisterRequest
from ..utils.clock import Clock, utc_now
from ..utils.mongo import serialize_document, to_object_id
from .google_auth import ExternalIdentity

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 8


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def new_user_document(
    email: str,
    username: str | None,
    role: str,
    created_at: datetime,
    password_hash: str | None = None,
    google_id: str | None = None,
) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "email": email,
        "role": role,
        "score": 0,
        "questionsAnswered": 0,
        "questionsCorrect": 0,
        "questionsIncorrect": 0,
        "lifetimePoints": 0,
        "yearlyPoints": 0,
        "monthlyPoints": 0,
        "dailyPoints": 0,
        "consecutiveLoginDays": 0,
        "lastLoginDate": None,
        "badges": [],
        "skills": [],
        "createdAt": created_at,
        "updatedAt": created_at,
    }
    # username and googleId carry sparse unique indexes, so leave them out when absent
    if username:
        doc["username"] = username
    if password_hash:
        doc["password"] = password_hash
    if google_id:
        doc["googleId"] = google_id
    return doc


def _user_oid(user_id: str):
    try:
        return to_object_id(user_id)
    except ValueError as exc:
        raise NotFoundError("User not found") from exc


def _auth_payload(codec: TokenCodec, user: Dict[str, Any]) -> Dict[str, Any]:
    return {"token": codec.issue(user), "user": serialize_document(user)}


async def register(
    db: AsyncIOMotorDatabase,
    payload: RegisterRequest,
    codec: TokenCodec,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    email = _normalize_email(payload.email)
    username = sanitize_text_field(payload.username)

    existing = await db.users.find_one({"$or": [{"email": email}, {"username": username}]})
    if existing:
        raise UserInputError("Username or email already exists")

    user_doc = new_user_document(email, username, payload.role, now(), password_hash=get_password_hash(payload.password))
    try:
        result = await db.users.insert_one(user_doc)
    except DuplicateKeyError as exc:
        raise UserInputError("Username or email already exists") from exc
    user_doc["_id"] = result.inserted_id

    logger.info("User registered successfully: %s", username)
    return _auth_payload(codec, user_doc)


async def login(db: AsyncIOMotorDatabase, email: str, password: str, codec: TokenCodec) -> Dict[str, Any]:
    user = await db.users.find_one({"email": _normalize_email(email)})
    if not user or not verify_password(password, user.get("password")):
        raise AuthenticationError("Invalid credentials")

    logger.info("User logged in successfully: %s", user.get("username") or user["email"])
    return _auth_payload(codec, user)


async def find_or_create_oauth_user(
    db: AsyncIOMotorDatabase,
    external: ExternalIdentity,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    email = _normalize_email(external.email)
    user = await db.users.find_one({"$or": [{"googleId": external.external_id}, {"email": email}]})

    if user is None:
        username = sanitize_text_field(external.display_name) if external.display_name else None
        if username and await db.users.find_one({"username": username}, {"_id": 1}):
            # Display names are not unique; fall back to the email local part on leaderboards
            username = None
        user = new_user_document(email, username, ROLE_USER, now(), google_id=external.external_id)
        result = await db.users.insert_one(user)
        user["_id"] = result.inserted_id
        logger.info("Created user %s from Google sign-in", email)
        return user

    if not user.get("googleId"):
        user = await db.users.find_one_and_update(
            {"_id": user["_id"]},
            {"$set": {"googleId": external.external_id, "updatedAt": now()}},
            return_document=ReturnDocument.AFTER,
        )
    return user


async def authenticate_with_google(
    db: AsyncIOMotorDatabase,
    external: ExternalIdentity,
    codec: TokenCodec,
) -> Dict[str, Any]:
    user = await find_or_create_oauth_user(db, external)
    return _auth_payload(codec, user)


async def get_me(db: AsyncIOMotorDatabase, identity: Identity) -> Dict[str, Any]:
    try:
        oid = to_object_id(identity.id)
    except ValueError as exc:
        raise AuthenticationError("User not found") from exc
    user = await db.users.find_one({"_id": oid})
    if not user:
        raise AuthenticationError("User not found")
    return serialize_document(user)


async def list_users(db: AsyncIOMotorDatabase, identity: Identity) -> List[Dict[str, Any]]:
    authorize(identity, USER_ADMIN_ROLES)
    cursor = db.users.find({}, {"password": 0}).sort("createdAt", -1)
    return [serialize_document(doc) async for doc in cursor]


async def get_user(db: AsyncIOMotorDatabase, identity: Identity, user_id: str) -> Dict[str, Any]:
    authorize(identity, USER_ADMIN_ROLES)
    user = await db.users.find_one({"_id": _user_oid(user_id)})
    if not user:
        raise NotFoundError("User not found")
    return serialize_document(user)


async def change_user_role(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    user_id: str,
    new_role: str,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    authorize(identity, USER_ADMIN_ROLES)

    if new_role not in USER_ROLES:
        raise UserInputError("Invalid role")
    # Nobody, not even a SUPER_ADMIN, can hand out SUPER_ADMIN
    if new_role == ROLE_SUPER_ADMIN:
        raise ForbiddenError("Cannot change role to SUPER_ADMIN")

    oid = _user_oid(user_id)
    updated = await db.users.find_one_and_update(
        {"_id": oid, "role": {"$ne": ROLE_SUPER_ADMIN}},
        {"$set": {"role": new_role, "updatedAt": now()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated:
        return serialize_document(updated)

    if await db.users.find_one({"_id": oid}, {"_id": 1}):
        raise ForbiddenError("Cannot change the role of a SUPER_ADMIN")
    raise NotFoundError("User not found")


async def delete_user(db: AsyncIOMotorDatabase, identity: Identity, user_id: str) -> bool:
    authorize(identity, USER_ADMIN_ROLES)

    oid = _user_oid(user_id)
    deleted = await db.users.find_one_and_delete({"_id": oid, "role": {"$ne": ROLE_SUPER_ADMIN}})
    if deleted:
        logger.info("User %s deleted by %s", user_id, identity.id)
        return True

    if await db.users.find_one({"_id": oid}, {"_id": 1}):
        raise ForbiddenError("Cannot delete a SUPER_ADMIN")
    raise NotFoundError("User not found")


async def update_username(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    username: str,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    username = (username or "").strip()
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError("Username must be at least 3 characters long")
    username = sanitize_text_field(username)

    if await db.users.find_one({"username": username}, {"_id": 1}):
        raise ValidationError("Username is already taken")

    try:
        updated = await db.users.find_one_and_update(
            {"_id": _user_oid(identity.id)},
            {"$set": {"username": username, "updatedAt": now()}},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError as exc:
        raise ValidationError("Username is already taken") from exc
    if not updated:
        raise NotFoundError("User not found")

    return {"id": str(updated["_id"]), "username": updated["username"]}


async def update_password(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    current_password: str,
    new_password: str,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    try:
        oid = to_object_id(identity.id)
    except ValueError as exc:
        raise AuthenticationError("User not found") from exc
    user = await db.users.find_one({"_id": oid}, {"password": 1})
    if not user:
        raise AuthenticationError("User not found")

    if not verify_password(current_password, user.get("password")):
        raise AuthenticationError("Current password is incorrect")
    if len(new_password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError("Password must be at least 8 characters long")

    await db.users.update_one(
        {"_id": oid},
        {"$set": {"password": get_password_hash(new_password), "updatedAt": now()}},
    )
    return {"success": True, "message": "Password updated successfully"}
