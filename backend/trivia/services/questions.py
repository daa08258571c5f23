from __future__ import annotations

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..core.dependencies import authorize
from ..core.errors import NotFoundError, UserInputError
from ..core.security import Identity
from ..models.constants import QUESTION_EDITOR_ROLES, QUESTION_STATUSES
from ..schemas.question import QuestionCreate, QuestionUpdate
from ..utils.clock import Clock, utc_now
from ..utils.mongo import serialize_document, to_object_id


def _question_oid(question_id: str):
    try:
        return to_object_id(question_id)
    except ValueError as exc:
        raise NotFoundError("Question not found") from exc


def empty_stats() -> Dict[str, Any]:
    return {"timesAnswered": 0, "correctAnswers": 0, "averageTimeToAnswer": 0.0, "difficultyRating": 0.0}


async def list_questions(db: AsyncIOMotorDatabase, status: Optional[str] = None) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {}
    if status is not None:
        if status not in QUESTION_STATUSES:
            raise UserInputError("Invalid status")
        query["status"] = status
    cursor = db.questions.find(query).sort("createdAt", -1)
    return [serialize_document(doc) async for doc in cursor]


async def get_question(db: AsyncIOMotorDatabase, question_id: str) -> Dict[str, Any]:
    question = await db.questions.find_one({"_id": _question_oid(question_id)})
    if not question:
        raise NotFoundError("Question not found")
    return serialize_document(question)


async def create_question(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    payload: QuestionCreate,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    authorize(identity, QUESTION_EDITOR_ROLES)

    timestamp = now()
    author = to_object_id(identity.id)
    doc = payload.model_dump()
    doc.update(
        {
            "stats": empty_stats(),
            "createdBy": author,
            "lastModifiedBy": author,
            "version": 1,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }
    )
    result = await db.questions.insert_one(doc)
    doc["_id"] = result.inserted_id
    return serialize_document(doc)


async def update_question(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    question_id: str,
    payload: QuestionUpdate,
    now: Clock = utc_now,
) -> Dict[str, Any]:
    authorize(identity, QUESTION_EDITOR_ROLES)

    changes = payload.model_dump(exclude_unset=True)
    changes["lastModifiedBy"] = to_object_id(identity.id)
    changes["updatedAt"] = now()

    updated = await db.questions.find_one_and_update(
        {"_id": _question_oid(question_id)},
        {"$set": changes, "$inc": {"version": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError("Question not found")
    return serialize_document(updated)


async def delete_question(db: AsyncIOMotorDatabase, identity: Identity, question_id: str) -> bool:
    authorize(identity, QUESTION_EDITOR_ROLES)

    result = await db.questions.delete_one({"_id": _question_oid(question_id)})
    if not result.deleted_count:
        raise NotFoundError("Question not found")
    return True


async def list_user_responses(db: AsyncIOMotorDatabase, identity: Identity) -> List[Dict[str, Any]]:
    cursor = db.user_responses.find({"userId": to_object_id(identity.id)}).sort("createdAt", -1)
    return [serialize_document(doc) async for doc in cursor]
