# tests/test_leaderboard.py
import logging

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from trivia.core.errors import LeaderboardError, UserInputError
from trivia.services.leaderboard import get_leaderboard, mask_email


@pytest.mark.parametrize(
    "email, expected",
    [
        ("a@example.com", "a*@example.com"),
        ("ab@example.com", "a*@example.com"),
        ("abc@example.com", "a***c@example.com"),
        ("verylongemail@example.com", "v***l@example.com"),
    ],
)
def test_mask_email(email, expected):
    assert mask_email(email) == expected


async def seed_scores(make_user):
    users = {}
    for name, score in (("dora", 200), ("carl", 150), ("bea", 100), ("abe", 50), ("newbie", None)):
        users[name] = await make_user(name, score=score)
    return users


async def test_ranks_scored_users_only(db, make_user):
    await seed_scores(make_user)

    result = await get_leaderboard(db, limit=5)

    board = result["leaderboard"]
    assert len(board) == 4
    assert [entry["position"] for entry in board] == [1, 2, 3, 4]
    assert board[0]["score"] == 200
    assert board[3]["score"] == 50
    assert board[0]["user"]["username"] == "dora"
    assert board[0]["user"]["email"] == "d***a@example.com"
    assert result["currentUserEntry"] is None


async def test_current_user_entry_has_global_position(db, make_user, codec, auth_headers):
    users = await seed_scores(make_user)
    _, bea = users["bea"]

    result = await get_leaderboard(db, limit=1, authorization=auth_headers(bea)["Authorization"], codec=codec)

    assert len(result["leaderboard"]) == 1
    entry = result["currentUserEntry"]
    assert entry["position"] == 3
    assert entry["user"]["id"] == bea.id
    assert entry["user"]["email"] == "b***a@example.com"
    assert entry["score"] == 100


async def test_unscored_caller_has_no_entry(db, make_user, codec, auth_headers):
    users = await seed_scores(make_user)
    _, newbie = users["newbie"]

    result = await get_leaderboard(db, authorization=auth_headers(newbie)["Authorization"], codec=codec)

    assert result["currentUserEntry"] is None


async def test_ties_break_on_username(db, make_user):
    await make_user("zed", score=10)
    await make_user("amy", score=10)
    await make_user("max", score=20)

    board = (await get_leaderboard(db))["leaderboard"]

    assert [entry["user"]["username"] for entry in board] == ["max", "amy", "zed"]
    assert [entry["position"] for entry in board] == [1, 2, 3]


async def test_limit_larger_than_user_count(db, make_user):
    await seed_scores(make_user)
    assert len((await get_leaderboard(db, limit=100))["leaderboard"]) == 4


async def test_default_limit_is_ten(db, make_user):
    for index in range(12):
        await make_user(f"player{index:02d}", score=index)
    assert len((await get_leaderboard(db))["leaderboard"]) == 10


async def test_negative_limit_rejected(db):
    with pytest.raises(UserInputError):
        await get_leaderboard(db, limit=-1)


async def test_bad_token_degrades_gracefully(db, make_user, codec, caplog):
    await seed_scores(make_user)

    with caplog.at_level(logging.INFO, logger="trivia"):
        result = await get_leaderboard(db, authorization="Bearer nonsense", codec=codec)

    assert len(result["leaderboard"]) == 4
    assert result["currentUserEntry"] is None
    assert "Unauthenticated user accessing leaderboard" in caplog.text


class UnreachableUsers:
    def find(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")


class UnreachableDatabase:
    users = UnreachableUsers()


async def test_store_failure_raises_leaderboard_error(caplog):
    with caplog.at_level(logging.ERROR, logger="trivia"):
        with pytest.raises(LeaderboardError) as exc_info:
            await get_leaderboard(UnreachableDatabase())

    assert exc_info.value.message == "Failed to fetch leaderboard"
    assert "no servers" in caplog.text
