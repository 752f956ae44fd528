"""
Request DTOs for the phone password-reset endpoints.

PhoneResetRequest    — POST /auth/phone/request-password-reset
PhoneResetConfirm    — POST /auth/phone/reset-password

Fields default to empty strings so a missing value reaches the service and is
reported as a 400 with a specific message instead of a schema error.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PhoneResetRequest(BaseModel):
    """Request body for POST /auth/phone/request-password-reset."""

    model_config = ConfigDict(populate_by_name=True)

    phone: str = ""


class PhoneResetConfirm(BaseModel):
    """Request body for POST /auth/phone/reset-password.

    ``otp`` is the 6-digit code sent by SMS. Accepts ``newPassword`` (the
    storefront's field name) or ``new_password``.
    """

    model_config = ConfigDict(populate_by_name=True)

    phone: str = ""
    otp: str = ""
    new_password: str = Field(
        default="",
        validation_alias=AliasChoices("newPassword", "new_password"),
    )
