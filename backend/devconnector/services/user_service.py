"""
Credential store operations: registration, login, lookup and rename.
"""
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.database.connection import store_operation
from devconnector.exceptions import FieldValidationError, NotFoundError
from devconnector.models.user import User
from devconnector.utils.avatar import gravatar_url
from devconnector.utils.logger import get_logger
from devconnector.utils.security import hash_password, verify_password

logger = get_logger(__name__)

USER_EXISTS_MSG = "User already exists"
INVALID_CREDENTIALS_MSG = "Invalid Credentials"
USER_NOT_FOUND_MSG = "User not found"


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: str | uuid.UUID) -> User:
    try:
        uid = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
    except ValueError as e:
        raise NotFoundError(USER_NOT_FOUND_MSG) from e
    async with store_operation(db, "get user"):
        user = await db.get(User, uid)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND_MSG)
    return user


async def register_user(db: AsyncSession, name: str, email: str, password: str) -> User:
    """
    Create a user with a gravatar avatar and a bcrypt password hash.
    An already-registered email is rejected before anything is written.
    """
    email = email.strip().lower()
    async with store_operation(db, "register user"):
        if await find_by_email(db, email) is not None:
            raise FieldValidationError(USER_EXISTS_MSG)
        user = User(
            name=name.strip(),
            email=email,
            avatar=gravatar_url(email),
            password_hash=hash_password(password),
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            # Concurrent registration with the same email won the unique index
            await db.rollback()
            raise FieldValidationError(USER_EXISTS_MSG) from e
    logger.info("User registered", extra={"user_id": str(user.id)})
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    async with store_operation(db, "authenticate"):
        user = await find_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise FieldValidationError(INVALID_CREDENTIALS_MSG)
    return user


async def rename_user(db: AsyncSession, user_id: str | uuid.UUID, name: str) -> User:
    user = await get_user(db, user_id)
    async with store_operation(db, "rename user"):
        user.name = name.strip()
        await db.commit()
    logger.info("User renamed", extra={"user_id": str(user.id)})
    return user
