from __future__ import annotations

from typing import Any, Dict


class TriviaError(Exception):
    """Base class for errors that are safe to show to API callers.

    Every subclass carries a stable machine readable ``code`` and the HTTP
    status it maps to. The message must never contain internal details.
    """

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, "code": self.code}


class AuthenticationError(TriviaError):
    code = "UNAUTHENTICATED"
    status_code = 401


class ForbiddenError(TriviaError):
    code = "FORBIDDEN"
    status_code = 403


class UserInputError(TriviaError):
    code = "BAD_USER_INPUT"
    status_code = 400


class NotFoundError(TriviaError):
    code = "NOT_FOUND"
    status_code = 404


class ValidationError(TriviaError):
    code = "VALIDATION_ERROR"
    status_code = 422


class LeaderboardError(TriviaError):
    """The backing store failed while reading the leaderboard."""

    code = "LEADERBOARD_ERROR"
    status_code = 500


class InvalidCredential(Exception):
    """Raised by the token codec. Never shown to callers as-is."""
