"""
JWT authentication dependency. Use CurrentUserId for protected routes.
The token is read from `x-auth-token` or from `Authorization: Bearer`.
"""
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from devconnector.utils.security import decode_access_token
from devconnector.utils.logger import get_logger

logger = get_logger(__name__)
bearer = HTTPBearer(auto_error=False)
token_header = APIKeyHeader(name="x-auth-token", auto_error=False)


async def get_current_user_id(
    header_token: Annotated[str | None, Depends(token_header)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
) -> str:
    """
    Extract and validate the JWT. Returns user id (str).
    Raises 401 if missing or invalid.
    """
    token = header_token
    if not token and credentials and credentials.scheme.lower() == "bearer":
        token = credentials.credentials
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = decode_access_token(token)
    if not user_id:
        logger.debug("Rejected invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


# Type alias for dependency injection
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
