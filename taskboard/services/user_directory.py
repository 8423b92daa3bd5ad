"""
TaskBoard — User Directory
===========================

What:  Creates and looks up user accounts; rotates password hashes.
How:   Usernames are unique, case-sensitive keys backed by a unique index.
       create_user() does a fast pre-check, then relies on the index for the
       race: if two sign-ups for the same name interleave, the loser's flush
       raises IntegrityError, which is reported as DuplicateUsernameError.
Who:   Auth routes and CredentialVerifier.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from taskboard.exceptions import DatabaseError, DuplicateUsernameError, NotFoundError
from taskboard.models.user import User
from taskboard.services.passwords import PasswordHasher

logger = logging.getLogger(__name__)


class UserDirectory:
    """
    Account records. Raw passwords never leave this class except as hashes.

    Responsibilities:
        - create_user(): sign-up, create-or-fail on username
        - find_by_username() / find_by_id(): lookups
        - rotate_password(): the only permitted mutation of a user
    """

    def __init__(self, hasher: PasswordHasher):
        self._hasher = hasher

    async def create_user(self, db: AsyncSession, username: str, raw_password: str) -> User:
        """
        Register a new account.

        Raises:
            DuplicateUsernameError: username already exists (including when a
                concurrent sign-up committed it first)
            DatabaseError: any other database failure
        """
        if await self.find_by_username(db, username) is not None:
            raise DuplicateUsernameError(username)

        password_hash = await run_in_threadpool(self._hasher.hash, raw_password)
        user = User(username=username, password_hash=password_hash)

        try:
            db.add(user)
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            logger.info("Concurrent sign-up lost the race for username %r", username)
            raise DuplicateUsernameError(username) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating user %r: %s", username, str(e))
            raise DatabaseError(context={"operation": "create_user"}) from e

        logger.info("User created: %s (%s)", user.username, user.id)
        return user

    async def find_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user %r: %s", username, str(e))
            raise DatabaseError(context={"operation": "find_by_username"}) from e

    async def find_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        try:
            return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "find_by_id"}) from e

    async def rotate_password(
        self, db: AsyncSession, user_id: uuid.UUID, new_raw_password: str
    ) -> User:
        """
        Replace the stored hash with one for new_raw_password.

        Sessions issued before the rotation stay valid until they expire.
        """
        user = await self.find_by_id(db, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))

        user.password_hash = await run_in_threadpool(self._hasher.hash, new_raw_password)
        user.password_changed_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error rotating password for %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "rotate_password"}) from e

        logger.info("Password rotated for user %s", user.id)
        return user
