from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

Difficulty = Literal["basic", "intermediate", "advanced"]
QuestionType = Literal["multiple_choice", "true_false", "fill_in_blank"]
QuestionStatus = Literal["draft", "review", "active", "archived"]


class AnswerOption(BaseModel):
    text: str = Field(..., min_length=1)
    isCorrect: bool
    explanation: Optional[str] = None


class Feedback(BaseModel):
    correct: str = Field(..., min_length=1)
    incorrect: str = Field(..., min_length=1)


class TopicReference(BaseModel):
    mainTopic: str = Field(..., min_length=1)
    subTopics: List[str] = Field(default_factory=list)


class SourceLines(BaseModel):
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "SourceLines":
        if self.end < self.start:
            raise ValueError("End line must be greater than or equal to start line")
        return self


class SourceReference(BaseModel):
    page: int = Field(..., gt=0)
    chapter: Optional[str] = None
    section: Optional[str] = None
    paragraph: Optional[str] = None
    lines: SourceLines
    text: str = Field(..., min_length=1)


def _check_answers(answers: Optional[List[AnswerOption]]) -> Optional[List[AnswerOption]]:
    if answers is None:
        return answers
    if len(answers) < 2:
        raise ValueError("At least 2 answers are required")
    if not any(answer.isCorrect for answer in answers):
        raise ValueError("At least one answer must be correct")
    texts = [answer.text for answer in answers]
    if len(set(texts)) != len(texts):
        raise ValueError("Answer texts must be unique")
    return answers


class QuestionCreate(BaseModel):
    prompt: str = Field(..., min_length=3)
    questionText: str = Field(..., min_length=5)
    answers: List[AnswerOption]
    difficulty: Difficulty
    type: QuestionType
    topics: TopicReference
    sourceReferences: List[SourceReference] = Field(default_factory=list)
    learningObjectives: List[str] = Field(default_factory=list)
    relatedQuestions: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    hint: Optional[str] = None
    points: int = Field(default=1, gt=0)
    feedback: Feedback
    status: QuestionStatus = "draft"

    @field_validator("answers")
    @classmethod
    def validate_answers(cls, v):
        return _check_answers(v)


REQUIRED_QUESTION_FIELDS = frozenset(
    {"prompt", "questionText", "answers", "difficulty", "type", "topics", "points", "feedback", "status"}
)


class QuestionUpdate(BaseModel):
    prompt: Optional[str] = Field(default=None, min_length=3)
    questionText: Optional[str] = Field(default=None, min_length=5)
    answers: Optional[List[AnswerOption]] = None
    difficulty: Optional[Difficulty] = None
    type: Optional[QuestionType] = None
    topics: Optional[TopicReference] = None
    sourceReferences: Optional[List[SourceReference]] = None
    learningObjectives: Optional[List[str]] = None
    relatedQuestions: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    hint: Optional[str] = None
    points: Optional[int] = Field(default=None, gt=0)
    feedback: Optional[Feedback] = None
    status: Optional[QuestionStatus] = None

    @field_validator("answers")
    @classmethod
    def validate_answers(cls, v):
        return _check_answers(v)

    @model_validator(mode="after")
    def check_not_empty(self) -> "QuestionUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        # Optional here only so they can be left out; a question always has them
        nulled = sorted(
            name for name in self.model_fields_set & REQUIRED_QUESTION_FIELDS if getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class AnswerSubmission(BaseModel):
    selectedAnswer: str
