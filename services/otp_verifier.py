"""
Verify a submitted OTP and apply the new password exactly once.

Check order:
1. password policy (before any store access)
2. record exists, unused and unexpired
3. attempts below the cap
4. argon2 comparison of the submitted code
5. mismatch → atomic attempt increment
6. match → claim, credential update, then consume

A failed credential update releases the claim so the same code can be retried
until it expires. A successful one never does: the claim stays on the record
even when consuming it fails, so the code cannot change the password twice.
argon2 runs in a worker thread to keep the event loop free.

Every OTP rejection is an ``OtpInvalidError``; its ``reason`` is logged but
never returned to the caller.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from config import OtpSettings
from errors import (
    AccountNotFoundError,
    CredentialUpdateError,
    OtpAlreadyUsedError,
    OtpAttemptsExhaustedError,
    OtpExpiredError,
    OtpInvalidError,
    OtpMismatchError,
    OtpNotFoundError,
    PersistenceError,
)
from infrastructure.credentials.protocol import CredentialStore
from repositories.otp_repository import OtpRepository
from schemas.models.otp import OtpRecordDoc
from services.account_resolver import AccountResolver
from shared.crypto import verify_otp_code
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_secure_token
from shared.logging import get_logger, mask_phone
from shared.validators import validate_new_password

log = get_logger(__name__)


class OtpVerifier:
    def __init__(
        self,
        otps: OtpRepository,
        accounts: AccountResolver,
        credentials: CredentialStore,
        settings: OtpSettings,
        update_timeout: float = 10.0,
        clock: Clock = utcnow,
    ) -> None:
        self._otps = otps
        self._accounts = accounts
        self._credentials = credentials
        self._settings = settings
        self._update_timeout = update_timeout
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        return self._settings.otp_max_attempts

    def _reject(self, error: OtpInvalidError, phone: str, **context: Any) -> OtpInvalidError:
        log.warning(
            "otp_verification_failed",
            reason=error.reason,
            phone=mask_phone(phone),
            **context,
        )
        return error

    async def _stale(self, phone: str, issue_id: str) -> OtpInvalidError:
        """Explain why a guarded attempt increment matched nothing."""
        current = await self._otps.get(phone)
        if current is None or current.issue_id != issue_id:
            return OtpInvalidError("stale_record")
        if current.used:
            return OtpAlreadyUsedError()
        if current.is_exhausted(self.max_attempts):
            return OtpAttemptsExhaustedError()
        return OtpInvalidError("stale_record")

    def _check_record(self, record: Optional[OtpRecordDoc], phone: str) -> OtpRecordDoc:
        if record is None:
            raise self._reject(OtpNotFoundError(), phone)
        if record.used:
            raise self._reject(OtpAlreadyUsedError(), phone, issue_id=record.issue_id)
        if record.is_expired(self._clock()):
            raise self._reject(OtpExpiredError(), phone, issue_id=record.issue_id)
        if record.is_exhausted(self.max_attempts):
            raise self._reject(
                OtpAttemptsExhaustedError(), phone, issue_id=record.issue_id
            )
        return record

    async def verify(self, phone: str, submitted_code: str, new_password: str) -> None:
        validate_new_password(new_password)

        record = self._check_record(await self._otps.get(phone), phone)

        matches = await asyncio.to_thread(
            verify_otp_code, submitted_code, record.code_hash
        )
        if not matches:
            attempts = await self._otps.increment_attempts(
                phone, record.issue_id, self.max_attempts
            )
            if attempts is None:
                # Replaced, consumed or exhausted by a concurrent request
                raise self._reject(
                    await self._stale(phone, record.issue_id),
                    phone,
                    issue_id=record.issue_id,
                )
            raise self._reject(
                OtpMismatchError(),
                phone,
                issue_id=record.issue_id,
                attempts=attempts,
                attempts_remaining=max(0, self.max_attempts - attempts),
            )

        claim_token = generate_secure_token()
        claimed = await self._otps.claim(
            phone,
            record.issue_id,
            claim_token,
            now=self._clock(),
            max_attempts=self.max_attempts,
        )
        if not claimed:
            raise self._reject(
                OtpInvalidError("claim_conflict"), phone, issue_id=record.issue_id
            )

        account_id = await self._accounts.resolve(phone)
        if account_id is None:
            await self._otps.release_claim(phone, claim_token)
            raise self._reject(AccountNotFoundError(), phone, issue_id=record.issue_id)

        try:
            updated = await asyncio.wait_for(
                self._credentials.set_password(account_id, new_password),
                timeout=self._update_timeout,
            )
        except asyncio.TimeoutError:
            log.error("credential_update_timeout", account_id=account_id)
            updated = False

        if not updated:
            await self._otps.release_claim(phone, claim_token)
            log.error(
                "password_reset_credential_failed",
                account_id=account_id,
                phone=mask_phone(phone),
                issue_id=record.issue_id,
            )
            raise CredentialUpdateError("Failed to update password")

        # The password has changed; from here on the outcome is success and
        # the unreleased claim keeps the code from being used again.
        try:
            consumed = await self._otps.mark_used(phone, claim_token, self._clock())
        except PersistenceError:
            log.error(
                "otp_consume_failed",
                account_id=account_id,
                phone=mask_phone(phone),
                issue_id=record.issue_id,
            )
        else:
            if not consumed:
                # Replaced by a newer issuance while the update ran
                log.warning(
                    "otp_consume_missed",
                    account_id=account_id,
                    phone=mask_phone(phone),
                    issue_id=record.issue_id,
                )

        log.info(
            "password_reset_completed",
            account_id=account_id,
            phone=mask_phone(phone),
            issue_id=record.issue_id,
        )
