"""
Daily sequence — per-day order counter backing order numbers.

DailySequence.next_count(day) claims the next slot atomically and returns the
number of orders already numbered that day.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Protocol

from kungfu import Result, Ok, Error

from tillbook.errors import BillingError
from tillbook.identity._generate import (
    DEFAULT_PREFIX,
    business_day,
    generate_order_id,
    generate_order_number,
)


class DailySequence(Protocol):
    """Per-day counter protocol."""

    async def next_count(self, day: date) -> Result[int, BillingError]:
        """Claim a slot for day. Returns how many were claimed before it."""
        ...


class MemorySequence:
    """
    In-memory daily sequence.

    Note: Single process only; counters are lost on restart.
    """

    def __init__(self, seed: dict[date, int] | None = None) -> None:
        self._issued: dict[date, int] = dict(seed or {})
        self._lock = asyncio.Lock()

    async def next_count(self, day: date) -> Result[int, BillingError]:
        async with self._lock:
            count = self._issued.get(day, 0)
            self._issued[day] = count + 1
            return Ok(count)

    def issued(self, day: date) -> int:
        return self._issued.get(day, 0)


# ═══════════════════════════════════════════════════════════════════════════════
# Identity Assignment
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderIdentity:
    order_number: str
    order_id: str


async def claim_identity(
    sequence: DailySequence,
    created_at: datetime,
    prefix: str = DEFAULT_PREFIX,
    tz: tzinfo = timezone.utc,
) -> Result[OrderIdentity, BillingError]:
    """Claim today's next slot and build both identifiers from it."""
    match await sequence.next_count(business_day(created_at, tz)):
        case Ok(count):
            return Ok(
                OrderIdentity(
                    order_number=generate_order_number(created_at, count, prefix, tz),
                    order_id=generate_order_id(created_at),
                )
            )
        case Error(e):
            return Error(e)


__all__ = ("DailySequence", "MemorySequence", "OrderIdentity", "claim_identity")
