import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError

from authentication.models import AuthToken
from config import Settings, get_settings

logger = logging.getLogger("collegemate.authentication")

ACCESS_TOKEN_EXPIRE_MINUTES = 60


def unauthenticated_exception():
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthenticated",
    )


def forbidden_exception():
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Forbidden",
    )


def create_token(
        data: dict,
        secret_key: str,
        algorithm: str,
        expires_delta: timedelta | None = None,
):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_and_validate_token(token: str, secret_key: str, algorithm: str) -> AuthToken:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
        return AuthToken(**payload)
    except (InvalidTokenError, ValidationError) as exc:
        logger.debug("Rejected token: %s", exc)
        raise forbidden_exception()


async def check_origin_or_app_key(
        settings: Annotated[Settings, Depends(get_settings)],
        origin: Optional[str] = Header(None),
        application_key: Optional[str] = Header(None, alias="X-APPLICATION-KEY"),
):
    if origin != settings.webpage_origin and application_key not in settings.application_keys:
        raise forbidden_exception()


async def get_current_user(
        settings: Annotated[Settings, Depends(get_settings)],
        access_token: Optional[str] = Header(None, alias="X-ACCESS-TOKEN"),
) -> AuthToken:
    if access_token is None:
        raise unauthenticated_exception()

    token = decode_and_validate_token(access_token, settings.jwt_access_key, settings.jwt_algorithm)
    if not token.is_user_access:
        raise forbidden_exception()
    return token


async def get_current_user_or_admin(
        settings: Annotated[Settings, Depends(get_settings)],
        access_token: Optional[str] = Header(None, alias="X-ACCESS-TOKEN"),
        server_token: Optional[str] = Header(None, alias="X-SERVER-TOKEN"),
) -> AuthToken:
    if access_token is not None:
        return await get_current_user(settings, access_token)
    if server_token is None:
        raise unauthenticated_exception()

    token = decode_and_validate_token(server_token, settings.jwt_access_key, settings.jwt_algorithm)
    if not token.is_admin_access:
        raise forbidden_exception()
    return token
