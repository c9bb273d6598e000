"""
FastAPI dependencies for authentication.

Provides ``db_session`` and ``get_current_user_id`` dependencies that
are used across all protected routes.
"""

from __future__ import annotations

import logging
import uuid
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import Unauthorized
from auth.jwt import InvalidTokenError, TokenService
from database.session import get_db_session

logger = logging.getLogger(__name__)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def get_current_user_id(
    request: Request,
    x_auth_token: Optional[str] = Header(default=None, alias="x-auth-token"),
    tokens: TokenService = Depends(get_token_service),
) -> uuid.UUID:
    """
    Verify the ``x-auth-token`` header and return the authenticated user id.

    The decoded identity claim is also attached to ``request.state.user``.
    """
    if not x_auth_token:
        raise Unauthorized("No token, authorization denied")

    try:
        payload = tokens.verify_token(x_auth_token)
        user_id = uuid.UUID(payload["user"]["id"])
    except (InvalidTokenError, ValueError) as exc:
        logger.debug("Rejected token: %s", exc)
        raise Unauthorized("Token is not valid") from exc

    request.state.user = payload["user"]
    return user_id
