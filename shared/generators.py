"""
Random code and token generators — pure functions over ``secrets``.
"""

from __future__ import annotations

import secrets
import string


def generate_otp_code(length: int = 6) -> str:
    """Generate a cryptographically secure numeric OTP.

    Each digit is drawn independently, so every value from ``000000`` to
    ``999999`` is equally likely and leading zeros are kept.

    Args:
        length: Number of digits (default 6).

    Returns:
        String of random decimal digits.
    """
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_secure_token(length: int = 16) -> str:
    """Generate a URL-safe random token (issuance ids, claim tokens).

    Args:
        length: Number of random bytes before base64 encoding (default 16).
    """
    return secrets.token_urlsafe(length)
