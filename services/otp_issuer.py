"""Issue a password reset OTP and deliver it by SMS."""

from __future__ import annotations

import asyncio
import math
from datetime import timedelta

from config import OtpSettings
from errors import GatewayError, PersistenceError
from infrastructure.sms.protocol import SmsProvider
from repositories.otp_repository import OtpRepository
from schemas.models.otp import OtpRecordDoc
from shared.crypto import hash_otp_code
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_otp_code, generate_secure_token
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)


class OtpIssuer:
    def __init__(
        self,
        otps: OtpRepository,
        sms: SmsProvider,
        settings: OtpSettings,
        delivery_timeout: float = 10.0,
        clock: Clock = utcnow,
    ) -> None:
        self._otps = otps
        self._sms = sms
        self._settings = settings
        self._delivery_timeout = delivery_timeout
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.otp_ttl_seconds)

    async def issue(self, account_id: str, phone: str) -> None:
        """Replace any live OTP for *phone* with a new one and send it.

        Raises:
            GatewayError: the SMS was not delivered; the new record is
                discarded so nothing undelivered stays live.
        """
        code = generate_otp_code(self._settings.otp_length)
        now = self._clock()
        record = OtpRecordDoc(
            _id=phone,
            code_hash=await asyncio.to_thread(hash_otp_code, code),
            issue_id=generate_secure_token(),
            issued_at=now,
            expires_at=now + self.ttl,
        )
        await self._otps.replace(record)

        ttl_minutes = math.ceil(self._settings.otp_ttl_seconds / 60)
        try:
            delivered = await asyncio.wait_for(
                self._sms.send_password_reset_code(phone, code, ttl_minutes),
                timeout=self._delivery_timeout,
            )
        except asyncio.TimeoutError:
            log.error("sms_send_timeout", phone=mask_phone(phone))
            delivered = False

        if not delivered:
            try:
                await self._otps.discard(phone, record.issue_id)
            except PersistenceError:
                log.error(
                    "otp_discard_failed",
                    phone=mask_phone(phone),
                    issue_id=record.issue_id,
                )
            log.error(
                "otp_delivery_failed",
                account_id=account_id,
                phone=mask_phone(phone),
                issue_id=record.issue_id,
            )
            raise GatewayError("Failed to send OTP")

        log.info(
            "otp_issued",
            account_id=account_id,
            phone=mask_phone(phone),
            issue_id=record.issue_id,
            expires_at=record.expires_at.isoformat(),
        )
