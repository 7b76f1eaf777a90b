"""
Users: registration and display-name changes.
"""
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, BeforeValidator, Field
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.api.middleware.auth import CurrentUserId
from devconnector.api.middleware.rate_limit import check_api_rate_limit, check_auth_rate_limit
from devconnector.database.connection import get_db
from devconnector.models.user import User
from devconnector.services import user_service
from devconnector.utils.security import create_access_token
from devconnector.utils.validators import email_format, min_password_length, required

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    name: Annotated[str, BeforeValidator(required("Name is required"))] = Field(
        None, max_length=255, validate_default=True
    )
    email: Annotated[str, BeforeValidator(email_format("Please include a valid email"))] = Field(
        None, validate_default=True
    )
    password: Annotated[
        str, BeforeValidator(min_password_length("Please enter a password with 6 or more characters"))
    ] = Field(None, max_length=256, validate_default=True)


class NameRequest(BaseModel):
    name: Annotated[str, BeforeValidator(required("Name is required"))] = Field(
        None, max_length=255, validate_default=True
    )


class TokenResponse(BaseModel):
    token: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    avatar: str | None
    date: datetime | None


def user_response(user: User) -> UserResponse:
    """Public view of a user. Never includes the password hash."""
    return UserResponse(
        id=str(user.id),
        name=user.name,
        email=user.email,
        avatar=user.avatar,
        date=user.created_at,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("", response_model=TokenResponse)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Register a new user and return a signed token. Rate limited per IP."""
    check_auth_rate_limit(request)
    user = await user_service.register_user(db, body.name, body.email, body.password)
    return TokenResponse(token=create_access_token(str(user.id)))


@router.post("/name", response_model=UserResponse)
async def update_name(
    request: Request,
    user_id: CurrentUserId,
    body: NameRequest,
    db: AsyncSession = Depends(get_db),
):
    """Change the current user's display name."""
    check_api_rate_limit(request, user_id)
    user = await user_service.rename_user(db, user_id, body.name)
    return user_response(user)
