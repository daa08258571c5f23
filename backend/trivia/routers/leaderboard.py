from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.dependencies import get_authorization_header, get_token_codec
from ..core.security import TokenCodec
from ..db.mongo import get_db
from ..services.leaderboard import DEFAULT_LIMIT, get_leaderboard
from ..utils.responses import success_response

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("/")
async def leaderboard(
    limit: int = Query(default=DEFAULT_LIMIT, ge=0),
    authorization: Optional[str] = Depends(get_authorization_header),
    codec: TokenCodec = Depends(get_token_codec),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await get_leaderboard(db, limit=limit, authorization=authorization, codec=codec)
    return success_response("Leaderboard fetched successfully", result)
