"""Salted password hashing with a per-row scheme tag."""

import hashlib
import hmac
import secrets

from argon2.low_level import Type, hash_secret_raw

HASH_LENGTH = 32
SALT_LENGTH = 8

ARGON2ID = "argon2id"
SHA256 = "sha256"

# hashing_mode setting -> scheme stored alongside new hashes
SCHEME_FOR_MODE = {"secure": ARGON2ID, "fast": SHA256}

# Argon2id parameters matching the argon2 crate defaults (v19, 19 MiB, 2 passes)
ARGON2_TIME_COST = 2
ARGON2_MEMORY_COST = 19 * 1024
ARGON2_PARALLELISM = 1


class PasswordHasher:
    """Hash and verify passwords into fixed-size raw digests."""

    def __init__(self, mode: str = "secure") -> None:
        if mode not in SCHEME_FOR_MODE:
            raise ValueError(f"unknown hashing mode {mode!r}")
        self.scheme = SCHEME_FOR_MODE[mode]

    @staticmethod
    def new_salt() -> bytes:
        return secrets.token_bytes(SALT_LENGTH)

    @staticmethod
    def digest(password: str, salt: bytes, scheme: str) -> bytes:
        secret = password.encode("utf-8")
        if scheme == ARGON2ID:
            return hash_secret_raw(
                secret,
                salt,
                time_cost=ARGON2_TIME_COST,
                memory_cost=ARGON2_MEMORY_COST,
                parallelism=ARGON2_PARALLELISM,
                hash_len=HASH_LENGTH,
                type=Type.ID,
            )
        if scheme == SHA256:
            return hashlib.sha256(salt + secret).digest()
        raise ValueError(f"unknown hash scheme {scheme!r}")

    def hash(self, password: str) -> tuple[bytes, bytes, str]:
        """Return ``(digest, salt, scheme)`` for a new password."""
        salt = self.new_salt()
        return self.digest(password, salt, self.scheme), salt, self.scheme

    def verify(self, password: str, digest: bytes, salt: bytes, scheme: str) -> bool:
        return hmac.compare_digest(self.digest(password, salt, scheme), digest)

    def needs_rehash(self, scheme: str) -> bool:
        return scheme != self.scheme
