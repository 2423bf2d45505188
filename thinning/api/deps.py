from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Path, Request, Security, status
from fastapi.security import OAuth2PasswordBearer, SecurityScopes

from thinning.context import ThinningContext
from thinning.core.config import Settings
from thinning.core.security import (
    ALL_SCOPES,
    READ_SCOPE,
    WRITE_SCOPE,
    decode_access_token,
    verify_password,
)
from thinning.models.measurement import ResourceId
from thinning.repositories.base import MeasurementStore
from thinning.repositories.flux import parse_resource_id
from thinning.schemas.auth import User
from thinning.schemas.measurements import RESOURCE_ID_PATTERN
from thinning.services.measurements import MeasurementRepository

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", scopes=ALL_SCOPES)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_context(request: Request) -> ThinningContext:
    return request.app.state.context


def get_store(
    context: Annotated[ThinningContext, Depends(get_context)],
) -> MeasurementStore:
    return context.store


def get_resource_id(
    resource_id: Annotated[
        str, Path(min_length=1, max_length=64, pattern=RESOURCE_ID_PATTERN)
    ],
) -> ResourceId:
    return parse_resource_id(resource_id)


def get_resource_repository(
    resource_id: Annotated[ResourceId, Depends(get_resource_id)],
    store: Annotated[MeasurementStore, Depends(get_store)],
    context: Annotated[ThinningContext, Depends(get_context)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MeasurementRepository:
    return MeasurementRepository(
        resource_id,
        store=store,
        notifier=context.notifier,
        tolerance=timedelta(seconds=settings.nearest_tolerance_seconds),
        default_granularity_seconds=settings.default_granularity_seconds,
    )


def authenticate_user(*, username: str, password: str, settings: Settings) -> User | None:
    if username != settings.admin_username:
        return None
    if not verify_password(password, settings.admin_password_hash):
        return None
    return User(username=username, scopes=list(ALL_SCOPES))


def get_current_user(
    security_scopes: SecurityScopes,
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    authenticate_value = "Bearer"
    if security_scopes.scopes:
        authenticate_value = f'Bearer scope="{security_scopes.scope_str}"'

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": authenticate_value},
    )

    try:
        payload = decode_access_token(token, settings=settings)
    except jwt.PyJWTError as e:  # noqa: BLE001 - normalize to 401
        raise credentials_exception from e

    sub = payload.get("sub")
    token_scopes = payload.get("scopes", [])
    if not isinstance(sub, str) or not isinstance(token_scopes, list):
        raise credentials_exception

    exp = payload.get("exp")
    if isinstance(exp, (int, float)) and exp < datetime.now(tz=timezone.utc).timestamp():
        raise credentials_exception

    user = User(username=sub, scopes=[str(s) for s in token_scopes])

    for scope in security_scopes.scopes:
        if not user.has_scope(scope):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
                headers={"WWW-Authenticate": authenticate_value},
            )

    return user


CurrentUser = Annotated[User, Security(get_current_user)]

ReadUser = Annotated[User, Security(get_current_user, scopes=[READ_SCOPE])]
WriteUser = Annotated[User, Security(get_current_user, scopes=[WRITE_SCOPE])]

ResourceRepository = Annotated[MeasurementRepository, Depends(get_resource_repository)]
