"""Twilio implementation of SmsProvider.

Sends through the Programmable Messaging REST API with HTTP basic auth and a
form-encoded body. Delivery failures are logged and reported as ``False``;
the caller decides what a failed delivery means.
"""

import httpx

from config import SmsSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)

_TWILIO_MESSAGES_URL = (
    "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
)


class TwilioSmsProvider:
    def __init__(
        self,
        settings: SmsSettings,
        http_client: HttpClient,
        app_name: str = "Alpen Store",
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_name = app_name

    async def _send(self, to_phone: str, body: str) -> bool:
        if not self._settings.is_configured:
            log.error("sms_send_failed", reason="gateway_not_configured")
            return False

        url = _TWILIO_MESSAGES_URL.format(account_sid=self._settings.twilio_account_sid)
        data = {
            "To": to_phone,
            "From": self._settings.twilio_phone_number,
            "Body": body,
        }
        auth = (self._settings.twilio_account_sid, self._settings.twilio_auth_token)

        try:
            response = await self._http.post(url, data=data, auth=auth)
        except httpx.TimeoutException:
            log.error("sms_send_timeout", phone=mask_phone(to_phone))
            return False
        except httpx.HTTPError as e:
            log.error(
                "sms_send_error",
                phone=mask_phone(to_phone),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if 200 <= response.status_code < 300:
            log.info("sms_sent_success", phone=mask_phone(to_phone))
            return True
        log.error(
            "sms_send_failed",
            phone=mask_phone(to_phone),
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    def render_password_reset_body(self, otp_code: str, ttl_minutes: int) -> str:
        return (
            f"Your {self._app_name} password reset code is: {otp_code}. "
            f"This code expires in {ttl_minutes} minutes."
        )

    async def send_password_reset_code(
        self, phone: str, otp_code: str, ttl_minutes: int
    ) -> bool:
        body = self.render_password_reset_body(otp_code, ttl_minutes)
        return await self._send(phone, body)
