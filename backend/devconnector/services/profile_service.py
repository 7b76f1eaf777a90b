"""
Profile upsert and embedded-experience mutation.

Profiles are documents: scalar fields, a `social` sub-record and a
newest-first `experience` list live in one row. Every write reads the row
(locked with FOR UPDATE where the backend supports it), mutates it in
memory and commits, so the read-check-write sequence is one transaction.
"""
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Literal

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.database.connection import store_operation
from devconnector.exceptions import NotFoundError
from devconnector.models.profile import (
    EXPERIENCE_FIELDS,
    PROFILE_FIELDS,
    SOCIAL_FIELDS,
    Profile,
)
from devconnector.models.user import User
from devconnector.utils.logger import get_logger
from devconnector.utils.validators import parse_skills

logger = get_logger(__name__)

UpdatePolicy = Literal["truthy", "present"]

NO_PROFILE_MSG = "There is no profile for this user"
PROFILE_NOT_FOUND_MSG = "Profile Not Found"
EXPERIENCE_NOT_FOUND_MSG = "Experience not found"
USER_NOT_FOUND_MSG = "User not found"


# ---------------------------------------------------------------------------
# Field selection
# ---------------------------------------------------------------------------

def select_fields(
    data: Mapping[str, Any],
    keys: Iterable[str],
    policy: UpdatePolicy = "truthy",
) -> dict[str, Any]:
    """
    Pick the keys that count as "provided" in a partial update.

    truthy:  only truthy values are applied, so "" / False / 0 can never be stored.
    present: every key the client sent is applied, including falsy values.
             `data` must then contain only the fields the client actually sent
             (e.g. model_dump(exclude_unset=True)).
    """
    if policy == "present":
        return {k: data[k] for k in keys if k in data}
    return {k: data[k] for k in keys if data.get(k)}


def build_profile_fields(
    data: Mapping[str, Any], policy: UpdatePolicy = "truthy"
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split request data into (top-level fields, social fields). Skills are parsed here."""
    fields = select_fields(data, (*PROFILE_FIELDS, "skills"), policy)
    if "skills" in fields:
        raw = fields["skills"]
        fields["skills"] = parse_skills(raw) if isinstance(raw, str) else list(raw or [])
    social = select_fields(data, SOCIAL_FIELDS, policy)
    return fields, social


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def _to_uuid(value: str | uuid.UUID, message: str = PROFILE_NOT_FOUND_MSG) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise NotFoundError(message) from e


async def _find_profile(
    db: AsyncSession, uid: uuid.UUID, *, for_update: bool = False
) -> Profile | None:
    stmt = select(Profile).where(Profile.user_id == uid)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def get_profile_by_user(
    db: AsyncSession, user_id: str | uuid.UUID, *, message: str = PROFILE_NOT_FOUND_MSG
) -> Profile:
    """Return the user's profile (with user summary loaded) or raise NotFoundError."""
    uid = _to_uuid(user_id, message)
    async with store_operation(db, "get profile"):
        profile = await _find_profile(db, uid)
    if profile is None:
        raise NotFoundError(message)
    return profile


async def list_profiles(db: AsyncSession) -> list[Profile]:
    async with store_operation(db, "list profiles"):
        result = await db.execute(select(Profile).order_by(Profile.created_at))
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Upsert
# ---------------------------------------------------------------------------

def _merge_profile(profile: Profile, fields: Mapping[str, Any], social: Mapping[str, Any]) -> None:
    for key, value in fields.items():
        setattr(profile, key, value)
    if social:
        # Reassign so the JSON column is flagged dirty
        profile.social = {**(profile.social or {}), **social}


async def upsert_profile(
    db: AsyncSession,
    user_id: str | uuid.UUID,
    data: Mapping[str, Any],
    policy: UpdatePolicy = "truthy",
) -> Profile:
    """
    Create the user's profile, or merge the provided fields into the existing one.
    Fields not provided are left untouched; social links merge key by key.
    Returns the full stored profile.
    """
    uid = _to_uuid(user_id)
    fields, social = build_profile_fields(data, policy)

    async with store_operation(db, "upsert profile"):
        profile = await _find_profile(db, uid, for_update=True)
        if profile is not None:
            _merge_profile(profile, fields, social)
            await db.commit()
            logger.info("Profile updated", extra={"user_id": str(uid)})
        else:
            # Tokens outlive deleted accounts; never create a profile without its user
            if await db.get(User, uid) is None:
                raise NotFoundError(USER_NOT_FOUND_MSG)
            profile = Profile(user_id=uid, **fields)
            profile.social = dict(social)
            profile.experience = []
            db.add(profile)
            try:
                await db.commit()
                logger.info("Profile created", extra={"user_id": str(uid)})
            except IntegrityError:
                # Lost the create race to a concurrent request: apply as an update
                await db.rollback()
                profile = await _find_profile(db, uid, for_update=True)
                if profile is None:
                    raise
                _merge_profile(profile, fields, social)
                await db.commit()
                logger.info("Profile updated after create conflict", extra={"user_id": str(uid)})

        return await _find_profile(db, uid)


# ---------------------------------------------------------------------------
# Experience
# ---------------------------------------------------------------------------

def _experience_index(profile: Profile, experience_id: str) -> int:
    for i, entry in enumerate(profile.experience or []):
        if str(entry.get("id")) == str(experience_id):
            return i
    raise NotFoundError(EXPERIENCE_NOT_FOUND_MSG)


async def add_experience(
    db: AsyncSession, user_id: str | uuid.UUID, entry: Mapping[str, Any]
) -> Profile:
    """Prepend a new experience entry with a fresh id. No write happens if the user has no profile."""
    uid = _to_uuid(user_id, NO_PROFILE_MSG)
    async with store_operation(db, "add experience"):
        profile = await _find_profile(db, uid, for_update=True)
        if profile is None:
            raise NotFoundError(NO_PROFILE_MSG)
        new_entry = {k: entry[k] for k in EXPERIENCE_FIELDS if k in entry}
        new_entry["id"] = str(uuid.uuid4())
        profile.experience = [new_entry, *(profile.experience or [])]
        await db.commit()
        logger.info("Experience added", extra={"user_id": str(uid), "experience_id": new_entry["id"]})
        return await _find_profile(db, uid)


async def update_experience(
    db: AsyncSession,
    user_id: str | uuid.UUID,
    experience_id: str,
    changes: Mapping[str, Any],
    policy: UpdatePolicy = "truthy",
) -> Profile:
    """
    Merge the provided fields into the experience entry with the given id.
    Only that entry changes; its id and position in the list are kept.
    """
    uid = _to_uuid(user_id, NO_PROFILE_MSG)
    selected = select_fields(changes, EXPERIENCE_FIELDS, policy)
    async with store_operation(db, "update experience"):
        profile = await _find_profile(db, uid, for_update=True)
        if profile is None:
            raise NotFoundError(NO_PROFILE_MSG)
        index = _experience_index(profile, experience_id)
        experience = list(profile.experience)
        experience[index] = {**experience[index], **selected, "id": experience[index]["id"]}
        profile.experience = experience
        await db.commit()
        logger.info("Experience updated", extra={"user_id": str(uid), "experience_id": str(experience_id)})
        return await _find_profile(db, uid)


async def delete_experience(
    db: AsyncSession, user_id: str | uuid.UUID, experience_id: str
) -> Profile:
    uid = _to_uuid(user_id, NO_PROFILE_MSG)
    async with store_operation(db, "delete experience"):
        profile = await _find_profile(db, uid, for_update=True)
        if profile is None:
            raise NotFoundError(NO_PROFILE_MSG)
        index = _experience_index(profile, experience_id)
        profile.experience = [e for i, e in enumerate(profile.experience) if i != index]
        await db.commit()
        logger.info("Experience removed", extra={"user_id": str(uid), "experience_id": str(experience_id)})
        return await _find_profile(db, uid)


# ---------------------------------------------------------------------------
# Account removal
# ---------------------------------------------------------------------------

async def delete_account(db: AsyncSession, user_id: str | uuid.UUID) -> None:
    """Remove the user's profile and then the user, in one transaction."""
    uid = _to_uuid(user_id, USER_NOT_FOUND_MSG)
    async with store_operation(db, "delete account"):
        await db.execute(delete(Profile).where(Profile.user_id == uid))
        await db.execute(delete(User).where(User.id == uid))
        await db.commit()
    logger.info("User account deleted", extra={"user_id": str(uid)})
