"""
Post routes.

Route prefix: /api/post
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import NotFound
from auth.dependencies import db_session, get_current_user_id
from database.helpers import create_post, get_user
from database.models import Post
from utils.schemas import PostOut, PostRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/post", tags=["post"])


@router.post("", response_model=PostOut)
async def add_post(
    req: PostRequest,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Post:
    """
    Create a post as the authenticated user.

    The author's current name and avatar are copied onto the post; later
    changes to the user do not touch existing posts.
    """
    user = await get_user(session, user_id)
    if user is None:
        raise NotFound("User not found", status_code=status.HTTP_404_NOT_FOUND)

    post = await create_post(session, user, req.text)
    await session.commit()
    logger.debug("User %s created post %s", user_id, post.id)
    return post
