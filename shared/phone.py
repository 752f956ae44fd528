"""
Phone number canonicalization — pure, side-effect-free.

Every component keys its state on the canonical form returned by
``normalize_phone`` so that ``"0801 234 5678"`` and ``"+2348012345678"`` are
the same phone for rate limiting and OTP lookup.
"""

from __future__ import annotations

import re
from typing import Optional

from errors import ValidationError

_SEPARATORS = re.compile(r"[\s\-().]")
_MIN_DIGITS = 8
_MAX_DIGITS = 15  # E.164


def _calling_code_digits(calling_code: str) -> str:
    digits = calling_code.strip().lstrip("+")
    if not digits.isdigit():
        raise ValueError(f"Invalid calling code: {calling_code!r}")
    return digits


def normalize_phone(raw: Optional[str], calling_code: str = "+234") -> str:
    """Return *raw* in ``+<digits>`` form.

    Rules:
    - whitespace and the separators ``-``, ``.``, ``(``, ``)`` are dropped
    - ``00`` (international dialling prefix) becomes ``+``
    - a single leading trunk prefix ``0`` is replaced by *calling_code*
    - anything else must already start with ``+``

    Raises:
        ValidationError: empty input, no digits, a missing calling code, stray
            characters, or a digit count outside 8–15.
    """
    if raw is None:
        raise ValidationError("Phone number is required", field="phone")
    value = _SEPARATORS.sub("", str(raw))
    if not value:
        raise ValidationError("Phone number is required", field="phone")
    if not any(ch.isdigit() for ch in value):
        raise ValidationError("Phone number must contain digits", field="phone")

    if value.startswith("+"):
        digits = value[1:]
    elif value.startswith("00"):
        digits = value[2:]
    elif value.startswith("0"):
        digits = _calling_code_digits(calling_code) + value[1:]
    else:
        raise ValidationError(
            "Phone number must start with 0 or include a country code",
            field="phone",
        )

    if not digits.isdigit():
        raise ValidationError("Phone number contains invalid characters", field="phone")
    if not _MIN_DIGITS <= len(digits) <= _MAX_DIGITS:
        raise ValidationError("Phone number has an invalid length", field="phone")

    return f"+{digits}"
