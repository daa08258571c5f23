"""Answer submission and scoring.

A submission is checked against the question's options by exact text, stored
as an append-only ``user_responses`` row, and then folded into the question
and user statistics. Question and user are separate documents with no
transaction around them: if the process dies between the two updates the
question stats are ahead of the user counters.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.errors import NotFoundError, UserInputError
from ..core.security import Identity
from ..utils.clock import Clock, utc_now
from ..utils.mongo import to_object_id

logger = logging.getLogger(__name__)

MAX_STATS_ATTEMPTS = 5

DEFAULT_FEEDBACK = {"correct": "Correct!", "incorrect": "Incorrect."}


def running_average(old_average: float, old_count: int, sample: float) -> float:
    """Mean of ``old_count + 1`` samples given the mean of the first ``old_count``."""
    if old_count <= 0:
        return float(sample)
    return old_average + (sample - old_average) / (old_count + 1)


def find_answer(question: Dict[str, Any], selected_answer: str) -> Optional[Dict[str, Any]]:
    for option in question.get("answers") or []:
        if option.get("text") == selected_answer:
            return option
    return None


def _stats_filter(question_id: Any, times_answered: int) -> Dict[str, Any]:
    if times_answered == 0:
        return {
            "_id": question_id,
            "$or": [{"stats.timesAnswered": 0}, {"stats.timesAnswered": {"$exists": False}}],
        }
    return {"_id": question_id, "stats.timesAnswered": times_answered}


async def record_question_stats(
    db: AsyncIOMotorDatabase,
    question: Dict[str, Any],
    is_correct: bool,
    time_to_answer: float,
) -> None:
    """Increment the question's counters and fold the sample into its average.

    The average depends on the count it was computed from, so the update is
    conditional on ``timesAnswered`` being unchanged since the read and is
    retried against a fresh copy when another submission got there first.
    """
    question_id = question["_id"]
    increments = {"stats.timesAnswered": 1, "stats.correctAnswers": 1 if is_correct else 0}

    for _ in range(MAX_STATS_ATTEMPTS):
        stats = question.get("stats") or {}
        times_answered = int(stats.get("timesAnswered") or 0)
        correct_answers = int(stats.get("correctAnswers") or 0) + (1 if is_correct else 0)
        average = running_average(float(stats.get("averageTimeToAnswer") or 0.0), times_answered, time_to_answer)

        result = await db.questions.update_one(
            _stats_filter(question_id, times_answered),
            {
                "$inc": increments,
                "$set": {
                    "stats.averageTimeToAnswer": average,
                    "stats.difficultyRating": 1 - correct_answers / (times_answered + 1),
                },
            },
        )
        if result.matched_count:
            return

        question = await db.questions.find_one({"_id": question_id}, {"stats": 1})
        if not question:
            logger.warning("Question %s was deleted while recording stats", question_id)
            return

    logger.warning(
        "Could not update average time for question %s after %d attempts; counters only",
        question_id,
        MAX_STATS_ATTEMPTS,
    )
    await db.questions.update_one({"_id": question_id}, {"$inc": increments})


async def submit_answer(
    db: AsyncIOMotorDatabase,
    identity: Identity,
    question_id: str,
    selected_answer: str,
    now: Clock = utc_now,
    timer: Callable[[], float] = time.perf_counter,
) -> Dict[str, Any]:
    started = timer()

    try:
        question_oid = to_object_id(question_id)
    except ValueError as exc:
        raise NotFoundError("Question not found") from exc
    try:
        user_oid = to_object_id(identity.id)
    except ValueError as exc:
        raise NotFoundError("User not found") from exc

    question = await db.questions.find_one({"_id": question_oid})
    if not question:
        raise NotFoundError("Question not found")

    # Nothing is written unless the answer matches an option exactly
    option = find_answer(question, selected_answer)
    if option is None:
        raise UserInputError("Selected answer is not one of the question's answers")

    if not await db.users.find_one({"_id": user_oid}, {"_id": 1}):
        raise NotFoundError("User not found")

    is_correct = bool(option.get("isCorrect"))
    points = int(question.get("points") or 1) if is_correct else 0
    time_to_answer = max(0.0, timer() - started)

    await db.user_responses.insert_one(
        {
            "userId": user_oid,
            "questionId": question_oid,
            "selectedAnswer": selected_answer,
            "isCorrect": is_correct,
            "timeToAnswer": time_to_answer,
            "createdAt": now(),
        }
    )

    await record_question_stats(db, question, is_correct, time_to_answer)

    user_update: Dict[str, Any] = {
        "questionsAnswered": 1,
        "questionsCorrect" if is_correct else "questionsIncorrect": 1,
    }
    if points:
        # $inc refuses a null score, and null means "not ranked yet"
        await db.users.update_one({"_id": user_oid, "score": None}, {"$set": {"score": 0}})
        user_update["score"] = points
    await db.users.update_one({"_id": user_oid}, {"$inc": user_update})

    feedback = {**DEFAULT_FEEDBACK, **(question.get("feedback") or {})}
    return {
        "success": True,
        "isCorrect": is_correct,
        "feedback": feedback["correct"] if is_correct else feedback["incorrect"],
        "pointsAwarded": points,
    }
