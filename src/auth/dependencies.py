# src/auth/dependencies.py

from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from src.auth.schemas import AuthUser
from src.common.config import settings
from src.common.exceptions.exceptions import UnauthorizedException

bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> AuthUser:
    """
    Verify signature and expiry of an access token and return its identity.

    Expired tokens get their own code so the client knows to refresh.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedException("Token expired", "TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise UnauthorizedException("Invalid token", "INVALID_TOKEN")

    try:
        return AuthUser.model_validate(payload)
    except ValidationError:
        raise UnauthorizedException("Invalid token", "INVALID_TOKEN")


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    """
    Dependency returning the identity carried by the bearer token in the Authorization header.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("No token provided", "NO_TOKEN")

    user = decode_access_token(credentials.credentials)
    request.state.user = user
    request.state.tenant_id = user.tenant_id
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthUser]:
    """Same as ``get_current_user`` but anonymous callers get ``None``."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        user = decode_access_token(credentials.credentials)
    except UnauthorizedException:
        return None
    request.state.user = user
    request.state.tenant_id = user.tenant_id
    return user
