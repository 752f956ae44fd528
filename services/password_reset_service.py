"""
Phone password reset flow — the two operations exposed over HTTP.

request_reset: normalize → rate limit → resolve account → issue OTP
confirm_reset: normalize → verify OTP (policy first) → update credential

request_reset answers every admitted request with the same acknowledgement,
so the response never reveals whether the phone belongs to an account.
"""

from __future__ import annotations

import math

from errors import RateLimitError, ValidationError
from schemas.dto.responses.common import MessageResponse
from services.account_resolver import AccountResolver
from services.otp_issuer import OtpIssuer
from services.otp_verifier import OtpVerifier
from services.rate_limiter import RateLimiter
from shared.logging import get_logger, mask_phone
from shared.phone import normalize_phone

log = get_logger(__name__)

RESET_REQUESTED_MESSAGE = "If this phone number is registered, you will receive an OTP"
RESET_COMPLETED_MESSAGE = "Password updated successfully"


class PasswordResetService:
    def __init__(
        self,
        rate_limiter: RateLimiter,
        accounts: AccountResolver,
        issuer: OtpIssuer,
        verifier: OtpVerifier,
        calling_code: str = "+234",
    ) -> None:
        self._rate_limiter = rate_limiter
        self._accounts = accounts
        self._issuer = issuer
        self._verifier = verifier
        self._calling_code = calling_code

    async def request_reset(self, raw_phone: str) -> MessageResponse:
        phone = normalize_phone(raw_phone, self._calling_code)

        decision = await self._rate_limiter.admit(phone)
        if not decision.allowed:
            minutes = math.ceil(decision.retry_after_seconds / 60)
            raise RateLimitError(
                f"Too many OTP requests. Please try again in {minutes} minutes.",
                retry_after=decision.retry_after_seconds,
            )

        account_id = await self._accounts.resolve(phone)
        if account_id is not None:
            await self._issuer.issue(account_id, phone)

        log.info("password_reset_requested", phone=mask_phone(phone))
        return MessageResponse(success=True, message=RESET_REQUESTED_MESSAGE)

    async def confirm_reset(
        self, raw_phone: str, otp: str, new_password: str
    ) -> MessageResponse:
        if not raw_phone or not otp or not new_password:
            raise ValidationError("Phone, OTP, and new password are required")

        phone = normalize_phone(raw_phone, self._calling_code)
        await self._verifier.verify(phone, otp.strip(), new_password)
        return MessageResponse(success=True, message=RESET_COMPLETED_MESSAGE)
