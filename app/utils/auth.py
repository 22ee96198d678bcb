"""
Authentication utilities for Supabase access tokens and role checks.
"""

import logging

from jose import JWTError, jwt
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config import settings
from app.database import SupabaseService, get_db, first_row

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


class AuthError(Exception):
    """Custom authentication error"""
    pass


def decode_access_token(token: str) -> dict:
    """
    Decode a Supabase access token with the project's JWT secret.

    Raises:
        AuthError: If token is invalid, expired, or issued for another audience
    """
    try:
        return jwt.decode(
            token,
            settings.get_jwt_secret(),
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError:
        raise AuthError("Could not validate credentials")


def verify_token(token: str, db: SupabaseService) -> str:
    """
    Verify an access token and return the auth user id.

    Tokens are decoded locally when a JWT secret is configured, otherwise
    the auth API is asked for the user behind the token.

    Raises:
        AuthError: If the token does not identify a user
    """
    if settings.get_jwt_secret():
        user_id = decode_access_token(token).get("sub")
    else:
        try:
            response = db.get_client().auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token lookup failed: {e}")
            raise AuthError("Could not validate credentials")
        user = getattr(response, "user", None)
        user_id = getattr(user, "id", None)

    if not user_id:
        raise AuthError("Could not validate credentials")
    return str(user_id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: SupabaseService = Depends(get_db)
) -> dict:
    """
    Get the current user's profile row from the bearer token.

    Raises:
        HTTPException: If authentication fails
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        user_id = verify_token(credentials.credentials, db)
    except AuthError:
        raise credentials_exception

    try:
        response = db.get_admin_client().table("users").select("*").eq("id", user_id).limit(1).execute()
    except Exception as e:
        logger.error(f"Failed to load user {user_id}: {e}")
        raise credentials_exception

    user = first_row(response)
    if user is None:
        raise credentials_exception

    return user


async def get_current_admin_user(
    current_user: dict = Depends(get_current_user)
) -> dict:
    """
    Get the current admin user.

    Raises:
        HTTPException: If user is not an admin
    """
    if current_user.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
