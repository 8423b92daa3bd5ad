"""
TaskBoard — Account & Session Routes
=====================================

What:  Sign-up, sign-in, current-user and password rotation endpoints.
How:   Each handler validates the raw body through taskboard.validation, then
       delegates to UserDirectory / CredentialVerifier / SessionIssuer.
"""

import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import get_db_session
from taskboard.dependencies import get_current_identity, get_services
from taskboard.exceptions import MissingCredentialsError
from taskboard.schemas.auth import (
    PasswordChangeRequest,
    SignInRequest,
    SignUpRequest,
    TokenResponse,
    UserResponse,
)
from taskboard.schemas.common import ErrorResponse, documented_body
from taskboard.services.container import ServiceContainer
from taskboard.validation import parse_password_change, parse_sign_in, parse_sign_up

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/sign-up",
    status_code=status.HTTP_201_CREATED,
    response_model=UserResponse,
    responses={
        400: {"description": "Invalid username or password shape", "model": ErrorResponse},
        409: {"description": "Username already taken", "model": ErrorResponse},
    },
    summary="Create an account",
    openapi_extra=documented_body(SignUpRequest),
)
async def sign_up(
    payload: Dict[str, Any] = Body(..., examples=[{"username": "alice", "password": "s3cret-pass"}]),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> UserResponse:
    data = parse_sign_up(payload)
    user = await services.users.create_user(db, data.username, data.password)
    return UserResponse.model_validate(user)


@router.post(
    "/sign-in",
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange credentials for a session token",
    openapi_extra=documented_body(SignInRequest),
)
async def sign_in(
    payload: Dict[str, Any] = Body(..., examples=[{"username": "alice", "password": "s3cret-pass"}]),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> TokenResponse:
    data = parse_sign_in(payload)
    identity = await services.verifier.verify(db, data.username, data.password)
    session = services.sessions.issue(identity)
    logger.info("User %s signed in", identity)
    return TokenResponse(
        access_token=session.token,
        expires_at=session.expires_at_datetime,
        expires_in=session.expires_in,
    )


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Not signed in", "model": ErrorResponse}},
    summary="The signed-in user",
)
async def current_user(
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> UserResponse:
    user = await services.users.find_by_id(db, identity)
    if user is None:
        # Validly signed token for an account that no longer exists
        raise MissingCredentialsError(context={"user_id": str(identity)})
    return UserResponse.model_validate(user)


@router.post(
    "/password",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        400: {"description": "New password does not meet the rules", "model": ErrorResponse},
        401: {"description": "Not signed in or wrong current password", "model": ErrorResponse},
    },
    summary="Rotate the signed-in user's password",
    openapi_extra=documented_body(PasswordChangeRequest),
)
async def change_password(
    payload: Dict[str, Any] = Body(...),
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> Response:
    data = parse_password_change(payload)
    user = await services.users.find_by_id(db, identity)
    if user is None:
        raise MissingCredentialsError(context={"user_id": str(identity)})

    # Re-prove knowledge of the current password before replacing it
    await services.verifier.verify(db, user.username, data.current_password)
    await services.users.rotate_password(db, identity, data.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
