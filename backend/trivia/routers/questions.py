from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.dependencies import get_clock, get_current_identity
from ..core.security import Identity
from ..db.mongo import get_db
from ..schemas.question import AnswerSubmission, QuestionCreate, QuestionUpdate
from ..services import questions as question_service
from ..services.scoring import submit_answer
from ..utils.clock import Clock
from ..utils.responses import success_response

router = APIRouter(prefix="/api/questions", tags=["questions"])


@router.get("/")
async def list_questions(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    questions = await question_service.list_questions(db, status_filter)
    return success_response("Questions fetched successfully", questions)


@router.get("/responses/me")
async def my_responses(
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    responses = await question_service.list_user_responses(db, identity)
    return success_response("Responses fetched successfully", responses)


@router.get("/{question_id}")
async def get_question(question_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return success_response("Question fetched successfully", await question_service.get_question(db, question_id))


@router.post("/")
async def create_question(
    payload: QuestionCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    question = await question_service.create_question(db, identity, payload, now=now)
    return success_response("Question created successfully", question, status_code=status.HTTP_201_CREATED)


@router.put("/{question_id}")
async def update_question(
    question_id: str,
    payload: QuestionUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    question = await question_service.update_question(db, identity, question_id, payload, now=now)
    return success_response("Question updated successfully", question)


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await question_service.delete_question(db, identity, question_id)
    return success_response("Question deleted successfully")


@router.post("/{question_id}/answer")
async def answer_question(
    question_id: str,
    payload: AnswerSubmission,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    result = await submit_answer(db, identity, question_id, payload.selectedAnswer, now=now)
    return success_response("Answer submitted", result)
