"""Admin password derivation and verification.

Secrets are stored as `pbkdf2_sha256$<iterations>$<salt_b64>$<hash_b64>` so
the iteration count can be raised later without invalidating stored values.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 310_000
SALT_BYTES = 16


def _pbkdf2(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def derive_secret(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    salt = secrets.token_bytes(SALT_BYTES)
    digest = _pbkdf2(password, salt, iterations)
    return "$".join(
        [
            ALGORITHM,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(digest).decode("ascii"),
        ]
    )


def verify_secret(password: str, stored: str) -> bool:
    """Return True when `password` derives to `stored`.

    Malformed stored values never verify.
    """
    try:
        algorithm, iterations_text, salt_b64, hash_b64 = stored.split("$")
        iterations = int(iterations_text)
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
    except (AttributeError, ValueError):
        logger.error("password_secret_malformed")
        return False
    if algorithm != ALGORITHM:
        logger.error("password_secret_unknown_algorithm algorithm=%s", algorithm)
        return False
    return hmac.compare_digest(_pbkdf2(password or "", salt, iterations), expected)


__all__ = ["ALGORITHM", "DEFAULT_ITERATIONS", "derive_secret", "verify_secret"]
