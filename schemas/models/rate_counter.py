"""
Issuance rate counter, one per canonical phone.

Stored either in the `rate-counters` MongoDB collection or as a Redis hash.
`version` increases on every write and is what compare-and-set checks; a
counter that does not exist yet has version 0.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel


class RateCounter(MongoBaseModel):
    """Fixed-window counters for OTP issuance requests."""

    hourly_count: int = Field(default=0, ge=0)
    hourly_window_start: Optional[datetime] = None
    daily_count: int = Field(default=0, ge=0)
    daily_window_start: Optional[datetime] = None
    version: int = Field(default=0, ge=0)
    updated_at: Optional[datetime] = None
