"""
Input validators — framework-agnostic, pure functions.

``validate_new_password`` is the password policy for resets: it raises on the
first unmet rule so the caller can show one actionable message.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from errors import WeakPasswordError

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

_SYMBOL_RE = re.compile("[" + re.escape(PASSWORD_SYMBOLS) + "]")

# (requirement, predicate) in the order they are reported
_PASSWORD_RULES: list[tuple[str, Callable[[str], bool]]] = [
    (
        f"At least {PASSWORD_MIN_LENGTH} characters",
        lambda pw: len(pw) >= PASSWORD_MIN_LENGTH,
    ),
    (
        f"Maximum {PASSWORD_MAX_LENGTH} characters",
        lambda pw: len(pw) <= PASSWORD_MAX_LENGTH,
    ),
    ("At least one lowercase letter", lambda pw: re.search(r"[a-z]", pw) is not None),
    ("At least one uppercase letter", lambda pw: re.search(r"[A-Z]", pw) is not None),
    ("At least one number", lambda pw: re.search(r"[0-9]", pw) is not None),
    ("At least one special character", lambda pw: _SYMBOL_RE.search(pw) is not None),
]

PASSWORD_REQUIREMENTS: list[str] = [label for label, _ in _PASSWORD_RULES]


def first_unmet_password_rule(password: Optional[str]) -> Optional[str]:
    """Return the first requirement *password* fails, or ``None`` if it passes."""
    if not password:
        return "Password is required"
    for label, predicate in _PASSWORD_RULES:
        if not predicate(password):
            return label
    return None


def validate_new_password(password: Optional[str]) -> None:
    """Raise ``WeakPasswordError`` naming the first unmet rule.

    Returns silently when the password satisfies every rule.
    """
    unmet = first_unmet_password_rule(password)
    if unmet is not None:
        raise WeakPasswordError(
            f"Password does not meet requirements: {unmet}",
            field="newPassword",
            details={"requirements": PASSWORD_REQUIREMENTS},
        )
