from __future__ import annotations

from pydantic import BaseModel, Field


class BadgeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    imageUrl: str = Field(..., min_length=1)
