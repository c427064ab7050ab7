"""Seed generation for new draws."""

from __future__ import annotations

import secrets
import string

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
SEED_LENGTH = 32


def generate_seed(length: int = SEED_LENGTH) -> str:
    """Return a fresh base62 seed drawn from the OS CSPRNG.

    The seed is the only secret standing between an observer and the
    assignment, so anything shorter than :data:`SEED_LENGTH` is refused.
    """
    if length < SEED_LENGTH:
        raise ValueError(f"seed length must be at least {SEED_LENGTH}")
    return "".join(secrets.choice(BASE62_ALPHABET) for _ in range(length))


__all__ = ["BASE62_ALPHABET", "SEED_LENGTH", "generate_seed"]
