from __future__ import annotations

from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.dependencies import get_clock, get_current_identity
from ..core.security import Identity
from ..db.mongo import get_db
from ..schemas.badge import BadgeCreate
from ..services import badges as badge_service
from ..utils.clock import Clock
from ..utils.responses import success_response

router = APIRouter(prefix="/api/badges", tags=["badges"])


@router.get("/")
async def list_badges(
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return success_response("Badges fetched successfully", await badge_service.list_badges(db))


@router.get("/{badge_id}")
async def get_badge(
    badge_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return success_response("Badge fetched successfully", await badge_service.get_badge(db, badge_id))


@router.post("/")
async def create_badge(
    payload: BadgeCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    badge = await badge_service.create_badge(db, identity, payload, now=now)
    return success_response("Badge created successfully", badge, status_code=status.HTTP_201_CREATED)


@router.post("/{badge_id}/issue/{user_id}")
async def issue_badge(
    badge_id: str,
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    user = await badge_service.issue_badge_to_user(db, identity, badge_id, user_id, now=now)
    return success_response("Badge issued successfully", user)
