"""
Per-phone OTP issuance rate limiting with fixed hourly and daily windows.

The admit decision is a pure function of the stored counter and the current
time (``evaluate_windows``); ``RateLimiter.admit`` applies it with
compare-and-set against the shared store, reloading on conflict.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from config import RateLimitSettings
from errors import PersistenceError
from repositories.rate_counter_repository import RateCounterRepository
from schemas.models.rate_counter import RateCounter
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)


@dataclass(frozen=True)
class RateWindow:
    limit: int
    length: timedelta


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after_seconds: int = 0
    hourly_count: int = 0
    daily_count: int = 0


def _roll(
    count: int, start: Optional[datetime], window: RateWindow, now: datetime
) -> tuple[int, datetime]:
    """Reset a window whose length has fully elapsed."""
    if start is None or now - start >= window.length:
        return 0, now
    return count, start


def _seconds_until(end: datetime, now: datetime) -> int:
    return max(1, math.ceil((end - now).total_seconds()))


def evaluate_windows(
    counter: RateCounter, now: datetime, hourly: RateWindow, daily: RateWindow
) -> tuple[RateDecision, Optional[RateCounter]]:
    """Decide whether one more issuance fits in both windows.

    Returns the decision and, when allowed, the counter to persist (version
    bumped by one). A rejected request changes nothing.
    """
    hourly_count, hourly_start = _roll(
        counter.hourly_count, counter.hourly_window_start, hourly, now
    )
    daily_count, daily_start = _roll(
        counter.daily_count, counter.daily_window_start, daily, now
    )

    waits = []
    if hourly_count >= hourly.limit:
        waits.append(_seconds_until(hourly_start + hourly.length, now))
    if daily_count >= daily.limit:
        waits.append(_seconds_until(daily_start + daily.length, now))
    if waits:
        # Both windows must clear before another issuance is possible
        return (
            RateDecision(
                allowed=False,
                retry_after_seconds=max(waits),
                hourly_count=hourly_count,
                daily_count=daily_count,
            ),
            None,
        )

    updated = RateCounter(
        _id=counter.id,
        hourly_count=hourly_count + 1,
        hourly_window_start=hourly_start,
        daily_count=daily_count + 1,
        daily_window_start=daily_start,
        version=counter.version + 1,
        updated_at=now,
    )
    decision = RateDecision(
        allowed=True,
        hourly_count=updated.hourly_count,
        daily_count=updated.daily_count,
    )
    return decision, updated


class RateLimiter:
    def __init__(
        self,
        store: RateCounterRepository,
        settings: RateLimitSettings,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock
        self.hourly = RateWindow(
            settings.otp_hourly_limit,
            timedelta(seconds=settings.otp_hourly_window_seconds),
        )
        self.daily = RateWindow(
            settings.otp_daily_limit,
            timedelta(seconds=settings.otp_daily_window_seconds),
        )
        self.max_retries = settings.rate_limit_max_cas_retries

    async def admit(self, phone: str) -> RateDecision:
        for attempt in range(1, self.max_retries + 1):
            current = await self._store.load(phone)
            decision, updated = evaluate_windows(
                current, self._clock(), self.hourly, self.daily
            )
            if updated is None:
                log.warning(
                    "rate_limit_exceeded",
                    phone=mask_phone(phone),
                    hourly_count=decision.hourly_count,
                    daily_count=decision.daily_count,
                    retry_after=decision.retry_after_seconds,
                )
                return decision
            if await self._store.save(updated, expected_version=current.version):
                log.debug(
                    "rate_limit_admitted",
                    phone=mask_phone(phone),
                    hourly_count=decision.hourly_count,
                    daily_count=decision.daily_count,
                )
                return decision
            log.debug("rate_limit_conflict", phone=mask_phone(phone), attempt=attempt)

        log.error(
            "rate_limit_conflict_retries_exhausted",
            phone=mask_phone(phone),
            retries=self.max_retries,
        )
        raise PersistenceError("Could not update rate limit counter")
