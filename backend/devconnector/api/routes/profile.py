"""
Profile: create/update, read, list, delete account, and manage experience entries.
"""
from datetime import date, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.api.middleware.auth import CurrentUserId
from devconnector.api.middleware.rate_limit import check_api_rate_limit
from devconnector.config import get_settings
from devconnector.database.connection import get_db
from devconnector.models.profile import Profile
from devconnector.services import profile_service
from devconnector.utils.validators import required

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ProfileRequest(BaseModel):
    handle: str | None = Field(None, max_length=255)
    company: str | None = Field(None, max_length=255)
    website: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=255)
    bio: str | None = None
    status: Annotated[str, BeforeValidator(required("Status is required"))] = Field(
        None, max_length=255, validate_default=True
    )
    githubusername: str | None = Field(None, max_length=255)
    # Comma-delimited, e.g. "python, fastapi ,sql"
    skills: Annotated[str, BeforeValidator(required("Skills are required"))] = Field(
        None, validate_default=True
    )
    youtube: str | None = None
    facebook: str | None = None
    twitter: str | None = None
    instagram: str | None = None
    linkedin: str | None = None


class ExperienceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Annotated[str, BeforeValidator(required("Title is required"))] = Field(
        None, validate_default=True
    )
    company: Annotated[str, BeforeValidator(required("Company is required"))] = Field(
        None, validate_default=True
    )
    location: str | None = None
    from_: Annotated[date, BeforeValidator(required("From date is required"))] = Field(
        None, alias="from", validate_default=True
    )
    to: date | None = None
    current: bool = False
    description: str | None = None


class ExperienceUpdateRequest(ExperienceRequest):
    id: Annotated[str, BeforeValidator(required("Experience id is required"))] = Field(
        None, validate_default=True
    )


class ExperienceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str | None = None
    company: str | None = None
    location: str | None = None
    from_: date | None = Field(None, alias="from")
    to: date | None = None
    current: bool = False
    description: str | None = None


class UserSummary(BaseModel):
    id: str
    name: str
    avatar: str | None


class ProfileResponse(BaseModel):
    id: str
    user: UserSummary | None
    handle: str | None
    company: str | None
    website: str | None
    location: str | None
    bio: str | None
    status: str
    githubusername: str | None
    skills: list[str]
    social: dict[str, Any]
    experience: list[ExperienceResponse]
    date: datetime | None


class MessageResponse(BaseModel):
    msg: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _profile_response(profile: Profile) -> ProfileResponse:
    """Build ProfileResponse from ORM model (single source of truth)."""
    user = profile.user
    return ProfileResponse(
        id=str(profile.id),
        user=UserSummary(id=str(user.id), name=user.name, avatar=user.avatar) if user else None,
        handle=profile.handle,
        company=profile.company,
        website=profile.website,
        location=profile.location,
        bio=profile.bio,
        status=profile.status,
        githubusername=profile.githubusername,
        skills=profile.skills or [],
        social=profile.social or {},
        experience=[
            ExperienceResponse.model_validate(entry)
            for entry in (profile.experience or [])
            if isinstance(entry, dict)
        ],
        date=profile.created_at,
    )


def _update_policy() -> profile_service.UpdatePolicy:
    return get_settings().profile_update_policy


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user_id: CurrentUserId,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Get current user's profile. 400 if none exists yet."""
    check_api_rate_limit(request, user_id)
    profile = await profile_service.get_profile_by_user(
        db, user_id, message=profile_service.NO_PROFILE_MSG
    )
    return _profile_response(profile)


@router.post("", response_model=ProfileResponse)
async def upsert_my_profile(
    user_id: CurrentUserId,
    request: Request,
    body: ProfileRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create the current user's profile or merge the sent fields into it."""
    check_api_rate_limit(request, user_id)
    profile = await profile_service.upsert_profile(
        db, user_id, body.model_dump(exclude_unset=True), _update_policy()
    )
    return _profile_response(profile)


@router.get("", response_model=list[ProfileResponse])
async def list_profiles(db: AsyncSession = Depends(get_db)):
    """All profiles. Public."""
    profiles = await profile_service.list_profiles(db)
    return [_profile_response(p) for p in profiles]


@router.get("/user/{user_id}", response_model=ProfileResponse)
async def get_profile_by_user_id(user_id: str, db: AsyncSession = Depends(get_db)):
    """Profile of any user. Public. Unknown and malformed ids both give 400."""
    profile = await profile_service.get_profile_by_user(db, user_id)
    return _profile_response(profile)


@router.delete("", response_model=MessageResponse)
async def delete_my_account(
    user_id: CurrentUserId,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Delete the current user's profile and account."""
    check_api_rate_limit(request, user_id)
    await profile_service.delete_account(db, user_id)
    return MessageResponse(msg="User deleted")


@router.put("/experience", response_model=ProfileResponse)
async def add_experience(
    user_id: CurrentUserId,
    request: Request,
    body: ExperienceRequest,
    db: AsyncSession = Depends(get_db),
):
    """Add an experience entry to the front of the current user's list."""
    check_api_rate_limit(request, user_id)
    entry = body.model_dump(mode="json", by_alias=True, exclude_none=True)
    profile = await profile_service.add_experience(db, user_id, entry)
    return _profile_response(profile)


@router.post("/experience", response_model=ProfileResponse)
async def update_experience(
    user_id: CurrentUserId,
    request: Request,
    body: ExperienceUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Merge the sent fields into the experience entry whose id is given in the body."""
    check_api_rate_limit(request, user_id)
    changes = body.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude={"id"})
    profile = await profile_service.update_experience(
        db, user_id, body.id, changes, _update_policy()
    )
    return _profile_response(profile)


@router.delete("/experience/{exp_id}", response_model=ProfileResponse)
async def delete_experience(
    exp_id: str,
    user_id: CurrentUserId,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Remove one experience entry by id."""
    check_api_rate_limit(request, user_id)
    profile = await profile_service.delete_experience(db, user_id, exp_id)
    return _profile_response(profile)
