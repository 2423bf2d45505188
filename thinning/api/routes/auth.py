from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from thinning.api.deps import CurrentUser, authenticate_user, get_settings
from thinning.core.config import Settings
from thinning.core.security import create_access_token
from thinning.schemas.auth import Token, User

router = APIRouter(prefix="/auth")


@router.post("/token", response_model=Token)
def issue_token(
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Token:
    user = authenticate_user(
        username=form_data.username, password=form_data.password, settings=settings
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Requested scopes narrow the token; none requested means all granted.
    scopes = [s for s in form_data.scopes if s in user.scopes] or user.scopes
    token = create_access_token(subject=user.username, scopes=scopes, settings=settings)

    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return Token(access_token=token, token_type="bearer")


@router.get("/me", response_model=User)
def read_current_user(user: CurrentUser) -> User:
    return user
