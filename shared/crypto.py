"""
Cryptographic helpers — OTP code hashing.

OTP codes are hashed with argon2id (via argon2-cffi) so the stored value is
irreversible and verification goes through argon2's own constant-time
comparison rather than string equality.
"""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_otp_code(code: str) -> str:
    """Hash *code* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _hasher.hash(code)


def verify_otp_code(code: str, code_hash: str) -> bool:
    """Verify *code* against an argon2 *code_hash*.

    Returns:
        ``True`` if the code matches, ``False`` for a mismatch or a
        malformed hash.
    """
    try:
        return _hasher.verify(code_hash, code)
    except (VerificationError, InvalidHashError):
        return False
