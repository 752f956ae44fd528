"""
Password reset OTP document model.

Maps to the `password-reset-otps` MongoDB collection, one document per phone
(`_id` is the canonical phone). A new issuance replaces the document wholesale.

code_hash stores argon2(otp_code) — the plain OTP is never stored.
issue_id identifies one issuance; conditional writes are keyed on it so a
write aimed at a replaced record matches nothing.
claim_token / claimed_at are set when a verifier takes the record for the
credential update. A claim never lapses: only a failed update releases it,
so once the password has changed the code cannot be claimed again even if
marking it used fails.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel


class OtpRecordDoc(MongoBaseModel):
    """Document model for the `password-reset-otps` collection."""

    code_hash: str
    issue_id: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = Field(default=0, ge=0)
    used: bool = False
    used_at: Optional[datetime] = None
    claim_token: Optional[str] = None
    claimed_at: Optional[datetime] = None

    @property
    def phone(self) -> str:
        return self.id or ""

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_exhausted(self, max_attempts: int) -> bool:
        return self.attempts >= max_attempts

    @property
    def is_claimed(self) -> bool:
        return self.claim_token is not None
