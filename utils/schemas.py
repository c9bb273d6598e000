"""
Pydantic schemas for request bodies and API responses.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

MIN_PASSWORD_LENGTH = 6

SOCIAL_NETWORKS = ("youtube", "twitter", "facebook", "linkedin", "instagram")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class CheckedBody(BaseModel):
    """
    Request body whose required fields are checked by hand so every missing
    field is reported with its own message.

    Required fields are declared ``Optional`` with ``validate_default=True``
    and listed in ``required_messages``.
    """

    model_config = ConfigDict(populate_by_name=True)

    required_messages: ClassVar[Dict[str, str]] = {}

    @field_validator("*", mode="after")
    @classmethod
    def check_required(cls, value: Any, info: ValidationInfo) -> Any:
        message = cls.required_messages.get(info.field_name)
        if message and _is_blank(value):
            raise ValueError(message)
        return value


def _required(**kwargs: Any) -> Any:
    return Field(default=None, validate_default=True, **kwargs)


def _normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        _, normalized = validate_email(value.strip())
    except PydanticCustomError as exc:
        raise ValueError("Include a valid email") from exc
    return normalized


# ═══════════════════════════════════════════════════════════════════════════════
# Users / Auth
# ═══════════════════════════════════════════════════════════════════════════════


class RegisterRequest(CheckedBody):
    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "email": "Include a valid email",
    }

    name: Optional[str] = _required()
    email: Optional[str] = _required()
    password: Optional[str] = _required()

    @field_validator("email", mode="after")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_email(value)

    @field_validator("password", mode="after")
    @classmethod
    def check_password(cls, value: Optional[str]) -> Optional[str]:
        if value is None or len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Please enter a password with {MIN_PASSWORD_LENGTH} or more characters"
            )
        return value


class LoginRequest(CheckedBody):
    required_messages: ClassVar[Dict[str, str]] = {
        "email": "Include a valid email",
        "password": "Password is required",
    }

    email: Optional[str] = _required()
    password: Optional[str] = _required()

    @field_validator("email", mode="after")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_email(value)


class TokenResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    msg: str


class UserPublic(BaseModel):
    """The owner fields joined onto profiles."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    avatar: str


class UserOut(UserPublic):
    email: str
    created_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════════════════════════


class ProfileRequest(CheckedBody):
    """Create-or-update body; only non-empty fields are written."""

    required_messages: ClassVar[Dict[str, str]] = {
        "status": "Status is required",
        "skills": "Skills is required",
    }

    status: Optional[str] = _required()
    skills: Optional[str] = _required()
    company: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    githubusername: Optional[str] = None
    youtube: Optional[str] = None
    twitter: Optional[str] = None
    facebook: Optional[str] = None
    linkedin: Optional[str] = None
    instagram: Optional[str] = None

    def profile_fields(self) -> Dict[str, Any]:
        """Columns to write, skipping anything not supplied."""
        fields: Dict[str, Any] = {}
        for name in ("company", "website", "location", "bio", "status", "githubusername"):
            value = getattr(self, name)
            if not _is_blank(value):
                fields[name] = value
        if not _is_blank(self.skills):
            fields["skills"] = parse_skills(self.skills)
        social = {
            network: getattr(self, network)
            for network in SOCIAL_NETWORKS
            if not _is_blank(getattr(self, network))
        }
        if social:
            fields["social"] = social
        return fields


def parse_skills(raw: str) -> List[str]:
    """Split ``"python, sql ,go"`` into ``["python", "sql", "go"]``."""
    return [skill.strip() for skill in raw.split(",") if skill.strip()]


class ExperienceRequest(CheckedBody):
    required_messages: ClassVar[Dict[str, str]] = {
        "title": "Title is required",
        "company": "Company is required",
        "from_": "From date is required",
    }

    title: Optional[str] = _required()
    company: Optional[str] = _required()
    location: Optional[str] = None
    from_: Optional[date] = _required(alias="from")
    to: Optional[date] = None
    current: bool = False
    description: Optional[str] = None


class EducationRequest(CheckedBody):
    required_messages: ClassVar[Dict[str, str]] = {
        "school": "School is required",
        "degree": "Degree is required",
        "fieldofstudy": "Field of study is required",
        "from_": "From date is required",
    }

    school: Optional[str] = _required()
    degree: Optional[str] = _required()
    fieldofstudy: Optional[str] = _required()
    from_: Optional[date] = _required(alias="from")
    to: Optional[date] = None
    current: bool = False
    description: Optional[str] = None


class ExperienceEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    company: str
    location: Optional[str] = None
    from_: date = Field(alias="from")
    to: Optional[date] = None
    current: bool = False
    description: Optional[str] = None


class EducationEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    school: str
    degree: str
    fieldofstudy: str
    from_: date = Field(alias="from")
    to: Optional[date] = None
    current: bool = False
    description: Optional[str] = None


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user: UserPublic
    status: str
    company: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    githubusername: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    social: Dict[str, str] = Field(default_factory=dict)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Posts
# ═══════════════════════════════════════════════════════════════════════════════


class PostRequest(CheckedBody):
    required_messages: ClassVar[Dict[str, str]] = {"text": "Text is required"}

    text: Optional[str] = _required()


class PostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user: uuid.UUID = Field(validation_alias="user_id")
    text: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None
