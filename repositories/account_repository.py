"""
Account directory lookups (phone → account id).

Reads the storefront's `profiles` collection; never writes to it.
"""

from __future__ import annotations

from typing import Optional

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from errors import PersistenceError
from schemas.models.profile import ProfileDoc
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)

PROFILES_COLLECTION = "profiles"


class AccountRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def find_account_id_by_phone(self, phone: str) -> Optional[str]:
        """Return the account id registered to *phone*, or None."""
        try:
            doc = await self._col.find_one(
                {"phone": phone}, {"_id": 0, "user_id": 1, "phone": 1}
            )
        except PyMongoError as e:
            log.error(
                "account_lookup_failed",
                phone=mask_phone(phone),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceError("Account directory unavailable") from e

        if not doc or doc.get("user_id") is None:
            return None
        profile = ProfileDoc.from_mongo({**doc, "user_id": str(doc["user_id"])})
        return profile.user_id
