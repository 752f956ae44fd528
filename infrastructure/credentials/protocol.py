"""CredentialStore protocol — the external owner of account passwords."""

from typing import Protocol


class CredentialStore(Protocol):
    async def set_password(self, account_id: str, new_password: str) -> bool: ...
