from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.config import get_settings
from ..core.dependencies import get_clock, get_token_codec
from ..core.rate_limit import limiter
from ..core.security import TokenCodec
from ..db.mongo import get_db
from ..schemas.auth import GoogleAuthRequest, LoginRequest, RegisterRequest
from ..services import users as user_service
from ..services.google_auth import GoogleIdentityProvider, get_identity_provider
from ..utils.clock import Clock
from ..utils.responses import success_response


router = APIRouter(prefix="/api/auth", tags=["auth"])

AUTH_RATE_LIMIT = get_settings().auth_rate_limit


@router.post("/register")
@limiter.limit(AUTH_RATE_LIMIT)
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    now: Clock = Depends(get_clock),
):
    result = await user_service.register(db, payload, codec, now=now)
    return success_response("User registered successfully", result, status_code=status.HTTP_201_CREATED)


@router.post("/login")
@limiter.limit(AUTH_RATE_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    result = await user_service.login(db, payload.email, payload.password, codec)
    return success_response("Login successful", result)


@router.get("/google/url")
async def google_auth_url(
    state: Optional[str] = Query(default=None),
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
):
    return success_response("Google auth URL generated", {"url": provider.authorization_url(state)})


@router.post("/google")
async def google_sign_in(
    payload: GoogleAuthRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
):
    external = await provider.exchange_code(payload.code)
    result = await user_service.authenticate_with_google(db, external, codec)
    return success_response("Signed in with Google", result)
