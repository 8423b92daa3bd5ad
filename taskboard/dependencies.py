"""
TaskBoard — Request Dependencies
=================================

What:  FastAPI dependencies that hand route handlers the process-wide services
       and the caller's verified identity.
How:   Services come from request.app.state.services (built once by
       create_app). The identity comes from the `Authorization: Bearer` header,
       verified by SessionIssuer; every failure surfaces as a subclass of
       AuthenticationError, which the global handler turns into one generic 401.
"""

import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskboard.exceptions import MissingCredentialsError
from taskboard.services.container import ServiceContainer

# auto_error=False so a missing header goes through our own 401 format
bearer_scheme = HTTPBearer(auto_error=False, description="Session token from sign-in")


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: ServiceContainer = Depends(get_services),
) -> uuid.UUID:
    """
    Resolve the session token to a user id.

    Raises:
        MissingCredentialsError: no bearer token
        ExpiredTokenError / InvalidSignatureError: from SessionIssuer.verify()
    """
    if credentials is None or not credentials.credentials:
        raise MissingCredentialsError()

    identity = services.sessions.verify(credentials.credentials)
    request.state.user_id = identity
    return identity
