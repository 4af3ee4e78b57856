from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings

settings = get_settings()
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _decode_user(token: str) -> AuthUser:
    # Supabase signs with HS256; audience varies between projects
    payload = jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        options={"verify_aud": False},
    )
    return AuthUser(**payload)


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)]
) -> AuthUser:
    """
    Validate Supabase JWT and return the authenticated user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        return _decode_user(token.credentials)
    except (JWTError, ValidationError):
        raise credentials_exception


async def get_optional_user(
    token: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(optional_security)
    ],
) -> Optional[AuthUser]:
    """
    Return the session user when a valid token is sent, else None.

    Guest checkout is first-class, so a missing or invalid token is not an error.
    """
    if token is None:
        return None
    try:
        return _decode_user(token.credentials)
    except (JWTError, ValidationError):
        return None


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)]
) -> AuthUser:
    """
    Ensure the user may use the back-office.
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
