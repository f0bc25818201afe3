"""Capability token minting.

Tokens are drawn uniformly from the 62-symbol alphanumeric alphabet using the
OS CSPRNG. Minting never checks for collisions; the collection repository
relies on unique indexes and re-mints on violation.
"""

from __future__ import annotations

import secrets
import string

TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DEFAULT_TOKEN_LENGTH = 12


def mint_token(length: int = DEFAULT_TOKEN_LENGTH) -> str:
    if length <= 0:
        raise ValueError("token length must be positive")
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


__all__ = ["TOKEN_ALPHABET", "DEFAULT_TOKEN_LENGTH", "mint_token"]
