"""
Order identifiers — human-readable order number + opaque order id.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone, tzinfo

DEFAULT_PREFIX = "ORD"


def business_day(created_at: datetime, tz: tzinfo = timezone.utc) -> date:
    """
    Calendar day of created_at in the business timezone.

    Note: naive datetimes are taken as UTC.
    """
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at.astimezone(tz).date()


def generate_order_number(
    created_at: datetime,
    same_day_count: int,
    prefix: str = DEFAULT_PREFIX,
    tz: tzinfo = timezone.utc,
) -> str:
    """
    PREFIX-YYMMDD-NNNN where NNNN = same_day_count + 1.

    Example:
        generate_order_number(datetime(2024, 3, 5, tzinfo=UTC), 0)
        # "ORD-240305-0001"
    """
    if same_day_count < 0:
        raise ValueError(f"same_day_count must be >= 0, got {same_day_count}")
    day = business_day(created_at, tz)
    return f"{prefix}-{day:%y%m%d}-{same_day_count + 1:04d}"


def generate_order_id(created_at: datetime) -> str:
    """ord_<YYYYMMDDHHMMSS>_<12 hex>, unique without coordination."""
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc)
    return f"ord_{created_at:%Y%m%d%H%M%S}_{uuid.uuid4().hex[:12]}"


__all__ = (
    "DEFAULT_PREFIX",
    "business_day",
    "generate_order_number",
    "generate_order_id",
)
