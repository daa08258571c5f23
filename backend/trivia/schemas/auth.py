from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=255)
    role: str = Field(default="USER", pattern=r"^(USER|ADMIN|EDITOR)$")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)


class GoogleAuthRequest(BaseModel):
    code: str = Field(..., min_length=1)
