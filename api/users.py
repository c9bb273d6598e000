"""
User registration.

Route prefix: /api/users
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_settings
from api.errors import Conflict
from auth.dependencies import db_session, get_token_service
from auth.jwt import TokenService
from auth.password import hash_password
from config.settings import Settings
from database.helpers import create_user, get_user_by_email
from utils.avatar import gravatar_url
from utils.schemas import RegisterRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=TokenResponse)
async def register(
    req: RegisterRequest,
    session: AsyncSession = Depends(db_session),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Register a new user and return a signed token for them."""
    if await get_user_by_email(session, req.email) is not None:
        raise Conflict("User already exists")

    # bcrypt is CPU bound; keep it off the event loop
    password_hash = await asyncio.to_thread(hash_password, req.password, settings.bcrypt_rounds)

    try:
        user = await create_user(
            session,
            name=req.name.strip(),
            email=req.email,
            password_hash=password_hash,
            avatar=gravatar_url(req.email),
        )
        await session.commit()
    except IntegrityError:
        # lost a race with a concurrent registration for the same address
        await session.rollback()
        raise Conflict("User already exists")

    logger.info("Registered user %s (%s)", user.name, user.id)
    return {"token": tokens.create_token(str(user.id))}
