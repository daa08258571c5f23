"""Leaderboard ranking.

Every user with a score is ranked, highest score first with ties broken by
username, and positions are assigned across the whole ranking so the caller's
own entry carries its global position even when it falls outside the page.
The leaderboard is public: a missing or bad token only means there is no
``currentUserEntry``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ..core.dependencies import authenticate
from ..core.errors import AuthenticationError, LeaderboardError, UserInputError
from ..core.security import Identity, TokenCodec

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def mask_email(email: str) -> str:
    """``verylongemail@example.com`` -> ``v***l@example.com``.

    Local parts of one or two characters keep only the first character. Longer
    ones always show exactly three stars, whatever their length.
    """
    local, at, domain = email.partition("@")
    if not local:
        masked = "*"
    elif len(local) <= 2:
        masked = local[0] + "*"
    else:
        masked = local[0] + "***" + local[-1]
    return f"{masked}{at}{domain}"


def rank_users(users: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Turn users already sorted by (score desc, username asc) into entries."""
    entries = []
    for index, user in enumerate(users):
        email = user.get("email") or ""
        score = user.get("score") or 0
        entries.append(
            {
                "position": index + 1,
                "user": {
                    "id": str(user["_id"]),
                    "username": user.get("username") or email.split("@")[0],
                    "email": mask_email(email),
                    "role": user.get("role"),
                    "score": score,
                },
                "score": score,
            }
        )
    return entries


async def get_leaderboard(
    db: AsyncIOMotorDatabase,
    limit: int = DEFAULT_LIMIT,
    authorization: Optional[str] = None,
    codec: Optional[TokenCodec] = None,
) -> Dict[str, Any]:
    if limit < 0:
        raise UserInputError("Limit must be zero or greater")

    current: Optional[Identity] = None
    if codec is not None:
        try:
            current = authenticate(authorization, codec)
        except AuthenticationError:
            logger.info("Unauthenticated user accessing leaderboard")

    try:
        cursor = db.users.find(
            {"score": {"$ne": None}},
            {"username": 1, "email": 1, "role": 1, "score": 1},
        ).sort([("score", -1), ("username", 1)])
        users = await cursor.to_list(length=None)
    except PyMongoError as exc:
        logger.error("Error fetching leaderboard: %s", exc, exc_info=True)
        raise LeaderboardError("Failed to fetch leaderboard") from exc

    entries = rank_users(users)

    current_entry = None
    if current is not None:
        current_entry = next((entry for entry in entries if entry["user"]["id"] == current.id), None)

    return {"leaderboard": entries[:limit], "currentUserEntry": current_entry}
