"""
TaskBoard — Session Issuer
===========================

What:  Issues and verifies stateless session tokens (JWT, HMAC-signed).
How:   issue() signs {sub, iat, exp, typ} with the process-wide secret via
       PyJWT. verify() lets PyJWT check the signature and required claims,
       then compares `exp` against the injected clock itself, so the validity
       window is exactly [iat, iat + ttl) for whatever clock the issuer runs on.
Who:   Sign-in route (issue) and the get_current_identity dependency (verify).

Nothing is stored server-side: verification needs only the token, the secret
and the current time. Tokens are invalidated by expiry alone.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import jwt

from taskboard.exceptions import ExpiredTokenError, InvalidSignatureError

logger = logging.getLogger(__name__)

TOKEN_TYPE = "session"

Clock = Callable[[], float]


@dataclass(frozen=True)
class IssuedSession:
    token: str
    issued_at: int
    expires_at: int

    @property
    def expires_in(self) -> int:
        return self.expires_at - self.issued_at

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)


class SessionIssuer:
    """
    Signed, time-bounded session credentials.

    Args:
        secret:      HMAC key; immutable for the process lifetime
        ttl_seconds: validity window measured from issuance
        algorithm:   HS256 / HS384 / HS512
        clock:       returns the current UNIX time in seconds (injectable for tests)
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 3600,
        algorithm: str = "HS256",
        clock: Clock = time.time,
    ):
        if not secret:
            raise ValueError("Session secret must not be empty")
        if ttl_seconds <= 0:
            raise ValueError("Session TTL must be positive")
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._algorithm = algorithm
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, identity: uuid.UUID) -> IssuedSession:
        issued_at = int(self._clock())
        expires_at = issued_at + self._ttl_seconds
        payload = {
            "sub": str(identity),
            "iat": issued_at,
            "exp": expires_at,
            "typ": TOKEN_TYPE,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedSession(token=token, issued_at=issued_at, expires_at=expires_at)

    def verify(self, token: str) -> uuid.UUID:
        """
        Resolve a token to the identity it asserts.

        Raises:
            InvalidSignatureError: malformed, tampered, wrong key/algorithm,
                missing claims, or not a session token
            ExpiredTokenError: signature fine but now >= exp
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "iat", "exp"],
                    # Expiry is compared against self._clock below
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise InvalidSignatureError(context={"detail": type(e).__name__}) from e

        if payload.get("typ") != TOKEN_TYPE:
            raise InvalidSignatureError(context={"detail": "wrong token type"})

        try:
            expires_at = int(payload["exp"])
            identity = uuid.UUID(str(payload["sub"]))
        except (TypeError, ValueError) as e:
            raise InvalidSignatureError(context={"detail": "malformed claims"}) from e

        if self._clock() >= expires_at:
            raise ExpiredTokenError(context={"expired_at": expires_at})

        return identity
