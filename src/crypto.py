# SPDX-License-Identifier: GPL-3.0-only
"""Cryptographic utilities."""

import hmac
import os

from argon2 import PasswordHasher, Type

TIME_COST = int(os.getenv("ARGON2_TIME_COST", "3"))
MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "65536"))
PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "2"))
HASH_LENGTH = int(os.getenv("ARGON2_HASH_LENGTH", "32"))
SALT_LENGTH = int(os.getenv("ARGON2_SALT_LENGTH", "16"))

argon2_ph = PasswordHasher(
    time_cost=TIME_COST,
    memory_cost=MEMORY_COST,
    parallelism=PARALLELISM,
    hash_len=HASH_LENGTH,
    salt_len=SALT_LENGTH,
    type=Type.ID,
)


def hash_password_argon2id(pepper: bytes, password: str) -> str:
    """Hash a password using Argon2id with the provided pepper."""
    if not pepper:
        raise ValueError("Pepper cannot be empty")

    if not password:
        raise ValueError("Password cannot be empty")

    return argon2_ph.hash(pepper + password.encode())


def codes_match(expected: str, provided: str) -> bool:
    """Compare two short secrets in constant time."""
    if expected is None or provided is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))
