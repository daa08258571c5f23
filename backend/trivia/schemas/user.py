from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class RoleChangeRequest(BaseModel):
    newRole: str


class UsernameUpdateRequest(BaseModel):
    username: str


class PasswordUpdateRequest(BaseModel):
    currentPassword: str
    newPassword: str


class BadgeInput(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    imageUrl: Optional[str] = None


class UserStatsInput(BaseModel):
    """Incremental stat delta applied by administrators.

    Numeric fields are accepted loosely and sanitized by the stats service, so
    strings, negatives and junk coerce to 0 instead of failing the request.
    """

    questionsAnswered: Any = None
    questionsCorrect: Any = None
    questionsIncorrect: Any = None
    pointsEarned: Any = None
    lifetimePoints: Any = None
    yearlyPoints: Any = None
    monthlyPoints: Any = None
    dailyPoints: Any = None
    consecutiveLoginDays: Any = None
    lastLoginDate: Optional[datetime] = None
    newBadge: Optional[BadgeInput] = None
    newSkills: List[str] = Field(default_factory=list)
