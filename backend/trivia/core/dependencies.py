from __future__ import annotations

import logging
from functools import lru_cache
from typing import AbstractSet, Optional

from fastapi import Depends, Header

from ..utils.clock import Clock, utc_now
from .config import get_settings
from .errors import AuthenticationError, ForbiddenError, InvalidCredential
from .security import Identity, TokenCodec

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_token_codec() -> TokenCodec:
    settings = get_settings()
    return TokenCodec(settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_clock() -> Clock:
    return utc_now


def authenticate(authorization: Optional[str], codec: TokenCodec) -> Identity:
    """Establish the caller's identity from an ``Authorization`` header value.

    Every failure is an AuthenticationError; a caller cannot tell a bad
    signature from an expired or malformed token.
    """
    if not authorization:
        raise AuthenticationError("Authorization header must be provided")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError('Authentication token must be "Bearer [token]"')

    try:
        return codec.verify(token)
    except InvalidCredential as exc:
        logger.debug("Token verification failed: %s", exc)
        raise AuthenticationError("Invalid/Expired token") from exc


def authorize(identity: Optional[Identity], allowed_roles: AbstractSet[str]) -> None:
    if identity is None or not getattr(identity, "role", None):
        raise ForbiddenError("Not authenticated")
    if identity.role not in allowed_roles:
        raise ForbiddenError("You do not have permission to perform this action")


async def get_authorization_header(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    return authorization


async def get_current_identity(
    authorization: Optional[str] = Depends(get_authorization_header),
    codec: TokenCodec = Depends(get_token_codec),
) -> Identity:
    return authenticate(authorization, codec)
