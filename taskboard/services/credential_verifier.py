"""
TaskBoard — Credential Verifier
================================

What:  Checks a username/password pair and yields the user's identity.
How:   Looks the user up, then always runs one bcrypt verification: against
       the stored hash when the user exists, against the hasher's dummy hash
       when it does not. Both failure paths raise the same
       InvalidCredentialsError, so neither the error nor the latency reveals
       whether the username exists.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from taskboard.exceptions import InvalidCredentialsError
from taskboard.services.passwords import PasswordHasher
from taskboard.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class CredentialVerifier:

    def __init__(self, directory: UserDirectory, hasher: PasswordHasher):
        self._directory = directory
        self._hasher = hasher

    async def verify(self, db: AsyncSession, username: str, raw_password: str) -> uuid.UUID:
        """
        Returns:
            The authenticated user's id.

        Raises:
            InvalidCredentialsError: unknown username or wrong password
        """
        user = await self._directory.find_by_username(db, username)
        stored_hash = user.password_hash if user is not None else self._hasher.dummy_hash

        matches = await run_in_threadpool(self._hasher.verify, raw_password, stored_hash)
        if user is None or not matches:
            logger.warning(
                "Failed sign-in for username %r (%s)",
                username,
                "unknown user" if user is None else "password mismatch",
            )
            raise InvalidCredentialsError()

        return user.id
