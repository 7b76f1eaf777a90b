"""
Authentication: log in and fetch the current user.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, BeforeValidator, Field
from sqlalchemy.ext.asyncio import AsyncSession

from devconnector.api.middleware.auth import CurrentUserId
from devconnector.api.middleware.rate_limit import check_auth_rate_limit
from devconnector.api.routes.users import TokenResponse, UserResponse, user_response
from devconnector.database.connection import get_db
from devconnector.services import user_service
from devconnector.utils.security import create_access_token
from devconnector.utils.validators import email_format, required

router = APIRouter()


class LoginRequest(BaseModel):
    email: Annotated[str, BeforeValidator(email_format("Please include a valid email"))] = Field(
        None, validate_default=True
    )
    password: Annotated[str, BeforeValidator(required("Password is required"))] = Field(
        None, max_length=256, validate_default=True
    )


@router.get("", response_model=UserResponse)
async def get_current_user(
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
):
    """Return the authenticated user (without password hash)."""
    user = await user_service.get_user(db, user_id)
    return user_response(user)


@router.post("", response_model=TokenResponse)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange email and password for a token. Rate limited per IP."""
    check_auth_rate_limit(request)
    user = await user_service.authenticate(db, body.email, body.password)
    return TokenResponse(token=create_access_token(str(user.id)))
