from __future__ import annotations

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.dependencies import get_clock, get_current_identity
from ..core.security import Identity
from ..db.mongo import get_db
from ..schemas.user import PasswordUpdateRequest, RoleChangeRequest, UsernameUpdateRequest, UserStatsInput
from ..services import users as user_service
from ..services.stats import apply_stats
from ..services.streaks import update_login_streak
from ..utils.clock import Clock
from ..utils.responses import success_response

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me")
async def get_me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return success_response("User profile fetched successfully", await user_service.get_me(db, identity))


@router.put("/me/username")
async def update_username(
    payload: UsernameUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    result = await user_service.update_username(db, identity, payload.username, now=now)
    return success_response("Username updated successfully", result)


@router.put("/me/password")
async def update_password(
    payload: PasswordUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    result = await user_service.update_password(db, identity, payload.currentPassword, payload.newPassword, now=now)
    return success_response(result["message"], result)


@router.get("/")
async def list_users(
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return success_response("Users fetched successfully", await user_service.list_users(db, identity))


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return success_response("User fetched successfully", await user_service.get_user(db, identity, user_id))


@router.put("/{user_id}/role")
async def change_user_role(
    user_id: str,
    payload: RoleChangeRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    result = await user_service.change_user_role(db, identity, user_id, payload.newRole, now=now)
    return success_response("User role updated successfully", result)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await user_service.delete_user(db, identity, user_id)
    return success_response("User deleted successfully")


@router.put("/{user_id}/stats")
async def update_user_stats(
    user_id: str,
    payload: UserStatsInput,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    result = await apply_stats(db, identity, user_id, payload, now=now)
    return success_response("User stats updated successfully", result)


@router.post("/{user_id}/login-streak")
async def record_login(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncIOMotorDatabase = Depends(get_db),
    now: Clock = Depends(get_clock),
):
    result = await update_login_streak(db, identity, user_id, now=now)
    return success_response("Login streak updated successfully", result)
