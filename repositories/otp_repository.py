"""
Password reset OTP persistence.

Every mutation is a single conditional write on the phone's document:

- replace()            — atomic upsert of a fresh issuance
- increment_attempts() — $inc guarded on issue_id / unused / below the cap
- claim()              — take the record before the credential update
- mark_used()          — consume, guarded on the claim token
- release_claim()      — give the claim back after a failed update
- discard()            — drop an issuance whose SMS was never delivered

Guards that match nothing mean another request got there first; callers treat
that as a rejection, never as success.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from errors import PersistenceError
from schemas.models.otp import OtpRecordDoc
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)

OTP_COLLECTION = "password-reset-otps"

# Expired records are removed by MongoDB one day after expiry
OTP_RETENTION_SECONDS = 86400


class OtpRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    def _fail(self, operation: str, phone: str, e: Exception) -> PersistenceError:
        log.error(
            "otp_store_error",
            operation=operation,
            phone=mask_phone(phone),
            error=str(e),
            error_type=type(e).__name__,
        )
        return PersistenceError("OTP store unavailable")

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            "expires_at", expireAfterSeconds=OTP_RETENTION_SECONDS
        )

    async def get(self, phone: str) -> Optional[OtpRecordDoc]:
        try:
            doc = await self._col.find_one({"_id": phone})
        except PyMongoError as e:
            raise self._fail("get", phone, e) from e
        return OtpRecordDoc.from_mongo(doc)

    async def replace(self, record: OtpRecordDoc) -> None:
        """Write *record* as the only record for its phone."""
        try:
            await self._col.replace_one(
                {"_id": record.id}, record.to_mongo(), upsert=True
            )
        except PyMongoError as e:
            raise self._fail("replace", record.phone, e) from e

    async def discard(self, phone: str, issue_id: str) -> bool:
        try:
            result = await self._col.delete_one({"_id": phone, "issue_id": issue_id})
        except PyMongoError as e:
            raise self._fail("discard", phone, e) from e
        return result.deleted_count == 1

    async def increment_attempts(
        self, phone: str, issue_id: str, max_attempts: int
    ) -> Optional[int]:
        """Record one failed attempt; return the new count, or None if the
        record was replaced, used or exhausted in the meantime."""
        try:
            doc = await self._col.find_one_and_update(
                {
                    "_id": phone,
                    "issue_id": issue_id,
                    "used": False,
                    "attempts": {"$lt": max_attempts},
                },
                {"$inc": {"attempts": 1}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._fail("increment_attempts", phone, e) from e
        if doc is None:
            return None
        return int(doc["attempts"])

    async def claim(
        self,
        phone: str,
        issue_id: str,
        claim_token: str,
        *,
        now: datetime,
        max_attempts: int,
    ) -> bool:
        """Claim a live, unclaimed record for one credential update."""
        try:
            result = await self._col.update_one(
                {
                    "_id": phone,
                    "issue_id": issue_id,
                    "used": False,
                    "attempts": {"$lt": max_attempts},
                    "expires_at": {"$gte": now},
                    "claim_token": None,
                },
                {"$set": {"claim_token": claim_token, "claimed_at": now}},
            )
        except PyMongoError as e:
            raise self._fail("claim", phone, e) from e
        return result.modified_count == 1

    async def mark_used(self, phone: str, claim_token: str, now: datetime) -> bool:
        try:
            result = await self._col.update_one(
                {"_id": phone, "claim_token": claim_token, "used": False},
                {"$set": {"used": True, "used_at": now}},
            )
        except PyMongoError as e:
            raise self._fail("mark_used", phone, e) from e
        return result.modified_count == 1

    async def release_claim(self, phone: str, claim_token: str) -> None:
        try:
            await self._col.update_one(
                {"_id": phone, "claim_token": claim_token},
                {"$set": {"claim_token": None, "claimed_at": None}},
            )
        except PyMongoError as e:
            raise self._fail("release_claim", phone, e) from e
