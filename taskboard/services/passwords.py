"""
TaskBoard — Password Hashing
=============================

What:  Thin wrapper around bcrypt for salted hashing and constant-time checks.
How:   bcrypt.gensalt() embeds a fresh salt and the cost factor in every hash;
       bcrypt.checkpw() recomputes with the stored salt and compares in
       constant time.
Who:   UserDirectory (hash on create/rotate) and CredentialVerifier (verify).

The hasher is synchronous; async callers push it to the threadpool so the
event loop stays responsive while bcrypt works.
"""

import logging

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt ignores (older releases) or rejects (5.x) input past 72 bytes
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    bcrypt hashing with a configurable work factor.

    Attributes:
        rounds:     log2 cost factor passed to bcrypt.gensalt()
        dummy_hash: hash of a random throwaway password, used to spend the same
                    verification time when a username does not exist
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self.dummy_hash = self.hash("unused-placeholder-password")

    def hash(self, raw_password: str) -> str:
        encoded = raw_password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password exceeds {BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify(self, raw_password: str, password_hash: str) -> bool:
        """
        True when raw_password matches password_hash.

        Over-long inputs can never have been stored, so they are checked against
        the dummy hash and reported as a mismatch.
        """
        encoded = raw_password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            bcrypt.checkpw(b"x", self.dummy_hash.encode("ascii"))
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("ascii"))
        except ValueError:
            # Corrupt stored hash
            logger.error("Stored password hash could not be parsed")
            return False
