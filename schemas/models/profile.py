"""
Storefront profile document model (read-only here).

Maps to the `profiles` collection owned by the account pages; this service
only uses it to map a canonical phone to the owning account id.
"""

from __future__ import annotations

from typing import Optional

from schemas.models.base import MongoBaseModel


class ProfileDoc(MongoBaseModel):
    """Document model for the `profiles` collection."""

    user_id: str
    phone: Optional[str] = None
