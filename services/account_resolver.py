"""Resolve a canonical phone to its account id.

A miss is an ordinary outcome, not an error: callers must answer an
unregistered phone exactly like a registered one.
"""

from __future__ import annotations

from typing import Optional

from repositories.account_repository import AccountRepository
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)


class AccountResolver:
    def __init__(self, accounts: AccountRepository) -> None:
        self._accounts = accounts

    async def resolve(self, phone: str) -> Optional[str]:
        account_id = await self._accounts.find_account_id_by_phone(phone)
        if account_id is None:
            log.info("account_not_found", phone=mask_phone(phone))
        return account_id
