"""
Profile routes — own profile, public listings, experience / education
entries and the GitHub repository proxy.

Route prefix: /api/profile
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

import httpx
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_github_client
from api.errors import NotFound
from auth.dependencies import db_session, get_current_user_id
from connectors.github import GitHubClient
from database.helpers import (
    add_entry,
    delete_account,
    get_profile_by_user,
    get_user,
    list_profiles,
    remove_entry,
    replace_entry,
    upsert_profile,
)
from database.models import Profile
from utils.schemas import (
    EducationRequest,
    ExperienceRequest,
    MessageResponse,
    ProfileOut,
    ProfileRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])

_NO_PROFILE = "There is no profile for this user"


async def _own_profile(session: AsyncSession, user_id: uuid.UUID) -> Profile:
    profile = await get_profile_by_user(session, user_id)
    if profile is None:
        raise NotFound(_NO_PROFILE)
    return profile


def _entry_payload(req: ExperienceRequest | EducationRequest) -> Dict[str, Any]:
    # JSON-ready dict keyed by the public field names ("from", not "from_")
    return req.model_dump(mode="json", by_alias=True)


# ── Own profile ───────────────────────────────────────────────────────


@router.get("/me", response_model=ProfileOut)
async def get_my_profile(
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    return await _own_profile(session, user_id)


@router.post("", response_model=ProfileOut)
async def save_profile(
    req: ProfileRequest,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    """Create the caller's profile, or update only the fields supplied."""
    if await get_user(session, user_id) is None:
        raise NotFound("User not found", status_code=status.HTTP_404_NOT_FOUND)
    try:
        profile = await upsert_profile(session, user_id, req.profile_fields())
    except IntegrityError:
        # account deleted between the lookup and the insert
        await session.rollback()
        raise NotFound("User not found", status_code=status.HTTP_404_NOT_FOUND)
    await session.commit()
    return profile


@router.delete("", response_model=MessageResponse)
async def delete_profile(
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Dict[str, Any]:
    """Remove the caller's posts, profile and account in one transaction."""
    await delete_account(session, user_id)
    await session.commit()
    return {"msg": "User removed"}


# ── Public ────────────────────────────────────────────────────────────


@router.get("", response_model=List[ProfileOut])
async def get_profiles(session: AsyncSession = Depends(db_session)) -> List[Profile]:
    return await list_profiles(session)


@router.get("/user/{user_id}", response_model=ProfileOut)
async def get_profile_by_user_id(
    user_id: str,
    session: AsyncSession = Depends(db_session),
) -> Profile:
    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        raise NotFound("No profile found")
    profile = await get_profile_by_user(session, uid)
    if profile is None:
        raise NotFound("No profile found")
    return profile


@router.get("/github/{username}")
async def get_github_repos(
    username: str,
    github: GitHubClient = Depends(get_github_client),
) -> List[Dict[str, Any]]:
    """Proxy the user's five oldest public repositories."""
    try:
        return await github.list_repos(username)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("GitHub repo lookup for %r failed: %s", username, exc)
        raise NotFound("No Github profile found", status_code=status.HTTP_404_NOT_FOUND)


# ── Experience ────────────────────────────────────────────────────────


@router.put("/experience", response_model=ProfileOut)
async def add_experience(
    req: ExperienceRequest,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    profile = await _own_profile(session, user_id)
    await add_entry(session, profile, "experience", _entry_payload(req))
    await session.commit()
    return profile


@router.post("/experience/{exp_id}", response_model=ProfileOut)
async def update_experience(
    exp_id: str,
    req: ExperienceRequest,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    profile = await _own_profile(session, user_id)
    if await replace_entry(session, profile, "experience", exp_id, _entry_payload(req)) is None:
        raise NotFound("Experience not found", status_code=status.HTTP_404_NOT_FOUND)
    await session.commit()
    return profile


@router.delete("/experience/{exp_id}", response_model=ProfileOut)
async def delete_experience(
    exp_id: str,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    profile = await _own_profile(session, user_id)
    if not await remove_entry(session, profile, "experience", exp_id):
        raise NotFound("Experience not found", status_code=status.HTTP_404_NOT_FOUND)
    await session.commit()
    return profile


# ── Education ─────────────────────────────────────────────────────────


@router.put("/education", response_model=ProfileOut)
async def add_education(
    req: EducationRequest,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    profile = await _own_profile(session, user_id)
    await add_entry(session, profile, "education", _entry_payload(req))
    await session.commit()
    return profile


@router.post("/education/{edu_id}", response_model=ProfileOut)
async def update_education(
    edu_id: str,
    req: EducationRequest,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    profile = await _own_profile(session, user_id)
    if await replace_entry(session, profile, "education", edu_id, _entry_payload(req)) is None:
        raise NotFound("Education not found", status_code=status.HTTP_404_NOT_FOUND)
    await session.commit()
    return profile


@router.delete("/education/{edu_id}", response_model=ProfileOut)
async def delete_education(
    edu_id: str,
    session: AsyncSession = Depends(db_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Profile:
    profile = await _own_profile(session, user_id)
    if not await remove_entry(session, profile, "education", edu_id):
        raise NotFound("Education not found", status_code=status.HTTP_404_NOT_FOUND)
    await session.commit()
    return profile
