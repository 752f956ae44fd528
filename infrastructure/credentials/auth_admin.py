"""Managed auth admin API implementation of CredentialStore.

The storefront's accounts live in a hosted auth service; passwords are changed
through its admin endpoint using the service-role key, which is sent both as
the ``apikey`` header and as the bearer token.
"""

import httpx

from config import CredentialStoreSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)


class AuthAdminCredentialStore:
    def __init__(self, settings: CredentialStoreSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    def _user_url(self, account_id: str) -> str:
        base = self._settings.auth_admin_url.rstrip("/")
        return f"{base}/admin/users/{account_id}"

    async def set_password(self, account_id: str, new_password: str) -> bool:
        if not (self._settings.auth_admin_url and self._settings.auth_service_role_key):
            log.error("credential_update_failed", reason="store_not_configured")
            return False

        key = self._settings.auth_service_role_key
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.put(
                self._user_url(account_id),
                json={"password": new_password},
                headers=headers,
            )
        except httpx.TimeoutException:
            log.error("credential_update_timeout", account_id=account_id)
            return False
        except httpx.HTTPError as e:
            log.error(
                "credential_update_error",
                account_id=account_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if 200 <= response.status_code < 300:
            log.info("credential_updated", account_id=account_id)
            return True
        log.error(
            "credential_update_failed",
            account_id=account_id,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False
