"""
Database helper functions — look up, upsert and remove users, profiles
and posts.

Helpers only ``flush``; the calling route owns the transaction and commits
once every step has succeeded.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Post, Profile, User

logger = logging.getLogger(__name__)

SECTIONS = ("experience", "education")


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return uuid.UUID(value) if isinstance(value, str) else value


# ── Users ─────────────────────────────────────────────────────────────


async def get_user(session: AsyncSession, user_id: str | uuid.UUID) -> Optional[User]:
    result = await session.execute(select(User).where(User.id == _to_uuid(user_id)))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    name: str,
    email: str,
    password_hash: str,
    avatar: str,
) -> User:
    user = User(
        id=uuid.uuid4(),
        name=name,
        email=email,
        password_hash=password_hash,
        avatar=avatar,
    )
    session.add(user)
    await session.flush()
    return user


# ── Profiles ──────────────────────────────────────────────────────────


async def get_profile_by_user(
    session: AsyncSession,
    user_id: str | uuid.UUID,
) -> Optional[Profile]:
    """Return the user's profile with its owner loaded, or ``None``."""
    result = await session.execute(
        select(Profile)
        .where(Profile.user_id == _to_uuid(user_id))
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def list_profiles(session: AsyncSession) -> List[Profile]:
    result = await session.execute(select(Profile).order_by(Profile.created_at))
    return list(result.scalars().all())


def _insert_for(session: AsyncSession):
    if session.bind.dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def _merged_social(
    session: AsyncSession,
    user_id: uuid.UUID,
    supplied: Dict[str, str],
) -> Dict[str, str]:
    result = await session.execute(select(Profile.social).where(Profile.user_id == user_id))
    stored = result.scalar_one_or_none() or {}
    return {**stored, **supplied}


async def upsert_profile(
    session: AsyncSession,
    user_id: str | uuid.UUID,
    fields: Dict[str, Any],
) -> Profile:
    """
    Create the user's profile or overwrite only the given ``fields``.

    A single ``INSERT … ON CONFLICT (user_id) DO UPDATE`` statement, so two
    concurrent first saves cannot both create a row. Supplied social links are
    merged per network into the stored ones.
    """
    uid = _to_uuid(user_id)
    if "social" in fields:
        fields = {**fields, "social": await _merged_social(session, uid, fields["social"])}

    insert = _insert_for(session)
    stmt = insert(Profile).values(user_id=uid, **fields)
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id"],
        set_={name: stmt.excluded[name] for name in fields},
    )
    await session.execute(stmt)
    await session.flush()

    profile = await get_profile_by_user(session, uid)
    if profile is None:
        raise RuntimeError(f"Profile for user {uid} vanished after upsert")
    return profile


async def delete_account(session: AsyncSession, user_id: str | uuid.UUID) -> None:
    """Delete the user's posts, profile and user row in the caller's transaction."""
    uid = _to_uuid(user_id)
    posts = await session.execute(delete(Post).where(Post.user_id == uid))
    await session.execute(delete(Profile).where(Profile.user_id == uid))
    await session.execute(delete(User).where(User.id == uid))
    await session.flush()
    logger.info("Deleted account %s (%d posts)", uid, posts.rowcount)


# ── Experience / education entries ────────────────────────────────────


def _entries(profile: Profile, section: str) -> List[Dict[str, Any]]:
    if section not in SECTIONS:
        raise ValueError(f"Unknown profile section: {section!r}")
    return list(getattr(profile, section))


def find_entry(entries: List[Dict[str, Any]], entry_id: str) -> Optional[int]:
    """Position of the entry whose ``id`` is ``entry_id``, or ``None``."""
    for index, entry in enumerate(entries):
        if entry.get("id") == entry_id:
            return index
    return None


async def add_entry(
    session: AsyncSession,
    profile: Profile,
    section: str,
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    """Prepend a new entry with a fresh id to ``profile.<section>``."""
    entry = {"id": uuid.uuid4().hex, **payload}
    # reassign rather than mutate so the JSON column is marked dirty
    setattr(profile, section, [entry, *_entries(profile, section)])
    await session.flush()
    return entry


async def replace_entry(
    session: AsyncSession,
    profile: Profile,
    section: str,
    entry_id: str,
    payload: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """Overwrite the matching entry in place; ``None`` if there is no match."""
    entries = _entries(profile, section)
    index = find_entry(entries, entry_id)
    if index is None:
        return None
    entries[index] = {"id": entry_id, **payload}
    setattr(profile, section, entries)
    await session.flush()
    return entries[index]


async def remove_entry(
    session: AsyncSession,
    profile: Profile,
    section: str,
    entry_id: str,
) -> bool:
    """Drop the matching entry; ``False`` if there is no match."""
    entries = _entries(profile, section)
    index = find_entry(entries, entry_id)
    if index is None:
        return False
    del entries[index]
    setattr(profile, section, entries)
    await session.flush()
    return True


# ── Posts ─────────────────────────────────────────────────────────────


async def create_post(session: AsyncSession, user: User, text: str) -> Post:
    """Insert a post carrying a snapshot of the author's name and avatar."""
    post = Post(
        id=uuid.uuid4(),
        user_id=user.id,
        text=text,
        name=user.name,
        avatar=user.avatar,
    )
    session.add(post)
    await session.flush()
    return post
