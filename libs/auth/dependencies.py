from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> AuthUser:
    """Decode a Supabase (HS256) JWT into an AuthUser.

    Raises JWTError or ValidationError when the token cannot be trusted.
    """
    payload = jwt.decode(
        token,
        get_settings().SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        # Supabase tokens vary in aud
        options={"verify_aud": False},
    )
    # Supabase keeps the app role in app_metadata; the top-level claim is
    # usually just "authenticated".
    app_role = (payload.get("app_metadata") or {}).get("role")
    if app_role:
        payload = {**payload, "role": app_role}
    return AuthUser(**payload)


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)]
) -> AuthUser:
    """
    Validate Supabase JWT and return the authenticated user.
    """
    try:
        return decode_token(token.credentials)
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_user(
    token: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(optional_security)
    ]
) -> Optional[AuthUser]:
    """
    Return the user when a valid bearer token is present, otherwise None.

    Checkout accepts guests, so a missing or unverifiable token is not an error.
    """
    if token is None:
        return None
    try:
        return decode_token(token.credentials)
    except (JWTError, ValidationError):
        logger.info("Ignoring unverifiable bearer token; treating request as guest")
        return None


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)]
) -> AuthUser:
    """
    Ensure the user carries the admin (or service) role.
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
