from __future__ import annotations

import html
import logging
from datetime import timedelta
from typing import Any, Mapping, Optional

import bcrypt
import jwt
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..utils.clock import Clock, utc_now
from .errors import InvalidCredential

logger = logging.getLogger(__name__)

TOKEN_TTL = timedelta(days=1)


class Identity(BaseModel):
    """The verified caller, as decoded from a signed token."""

    id: str
    email: str
    role: str
    username: Optional[str] = None


class TokenCodec:
    """Signs and verifies the bearer credential carried by every request.

    Tokens are HS256 JWTs holding the subject id, email and role, valid for
    one day from issuance. Expiry is checked against the injected clock so that
    verification is deterministic under test.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", clock: Clock = utc_now) -> None:
        if not secret:
            raise RuntimeError("JWT_SECRET is not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock

    def __repr__(self) -> str:
        return f"TokenCodec(algorithm={self._algorithm!r})"

    def issue(self, user: Mapping[str, Any]) -> str:
        user_id = user.get("id") or user.get("_id")
        if not user_id or not user.get("email") or not user.get("role"):
            raise ValueError("Cannot issue a token without id, email and role")
        now = self._clock()
        payload = {
            "sub": str(user_id),
            "email": user["email"],
            "role": user["role"],
            "iat": int(now.timestamp()),
            "exp": int((now + TOKEN_TTL).timestamp()),
        }
        if user.get("username"):
            payload["username"] = user["username"]
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"], "verify_exp": False},
            )
        except jwt.PyJWTError as exc:
            raise InvalidCredential(str(exc)) from exc

        if payload["exp"] <= self._clock().timestamp():
            raise InvalidCredential("Token has expired")

        try:
            return Identity(
                id=payload["sub"],
                email=payload.get("email"),
                role=payload.get("role"),
                username=payload.get("username"),
            )
        except PydanticValidationError as exc:
            raise InvalidCredential("Token payload is malformed") from exc


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def sanitize_text_field(value: str) -> str:
    """Strip surrounding whitespace and escape HTML to prevent XSS."""
    return html.escape(value.strip(), quote=True)
