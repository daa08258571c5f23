import os
import uuid
from datetime import datetime, timezone

import pytest
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from trivia.core.security import Identity, TokenCodec  # noqa: E402
from trivia.services.users import new_user_document  # noqa: E402

TEST_SECRET = "test-secret-value"


@pytest.fixture
def db():
    """A fresh in-memory Mongo database per test."""
    client = AsyncMongoMockClient()
    return client[f"trivia_test_{uuid.uuid4().hex}"]


@pytest.fixture
def codec():
    return TokenCodec(TEST_SECRET)


@pytest.fixture
def make_user(db):
    """Insert a user and return (document, identity)."""

    async def _make_user(username="player", role="USER", score=0, email=None, **fields):
        doc = new_user_document(
            email or f"{username}@example.com",
            username,
            role,
            datetime(2023, 1, 1, tzinfo=timezone.utc),
        )
        doc["score"] = score
        doc.update(fields)
        result = await db.users.insert_one(doc)
        doc["_id"] = result.inserted_id
        identity = Identity(id=str(result.inserted_id), email=doc["email"], role=role, username=username)
        return doc, identity

    return _make_user


@pytest.fixture
def make_question(db):
    async def _make_question(points=1, stats=None, **fields):
        doc = {
            "prompt": "Capitals",
            "questionText": "What is the capital of France?",
            "answers": [
                {"text": "Paris", "isCorrect": True, "explanation": "Seat of government"},
                {"text": "Lyon", "isCorrect": False},
                {"text": "Marseille", "isCorrect": False},
            ],
            "difficulty": "basic",
            "type": "multiple_choice",
            "topics": {"mainTopic": "Geography", "subTopics": ["Europe"]},
            "points": points,
            "feedback": {"correct": "Well done!", "incorrect": "Not quite."},
            "stats": stats
            if stats is not None
            else {"timesAnswered": 0, "correctAnswers": 0, "averageTimeToAnswer": 0.0, "difficultyRating": 0.0},
            "version": 1,
            "status": "active",
            "createdAt": datetime(2023, 1, 1, tzinfo=timezone.utc),
        }
        doc.update(fields)
        result = await db.questions.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    return _make_question


@pytest.fixture
def auth_headers(codec):
    def _headers(identity):
        return {"Authorization": f"Bearer {codec.issue(identity.model_dump())}"}

    return _headers
