"""
Authentication — login and current-user lookup.

Route prefix: /api/auth
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import BadRequest, NotFound
from auth.dependencies import db_session, get_current_user_id, get_token_service
from auth.jwt import TokenService
from auth.password import verify_password
from database.helpers import get_user, get_user_by_email
from database.models import User
from utils.schemas import LoginRequest, TokenResponse, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("", response_model=UserOut)
async def current_user(
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> User:
    """Return the authenticated user (never the password hash)."""
    user = await get_user(session, user_id)
    if user is None:
        raise NotFound("User not found", status_code=status.HTTP_404_NOT_FOUND)
    return user


@router.post("", response_model=TokenResponse)
async def login(
    req: LoginRequest,
    session: AsyncSession = Depends(db_session),
    tokens: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    """Login with email + password."""
    user = await get_user_by_email(session, req.email)
    if user is None or not await asyncio.to_thread(verify_password, req.password, user.password_hash):
        raise BadRequest("Invalid credentials")

    logger.info("Login: %s (%s)", user.name, user.id)
    return {"token": tokens.create_token(str(user.id))}
