"""SmsProvider protocol — services depend on this, not the concrete implementation."""

from typing import Protocol


class SmsProvider(Protocol):
    async def send_password_reset_code(
        self, phone: str, otp_code: str, ttl_minutes: int
    ) -> bool: ...
