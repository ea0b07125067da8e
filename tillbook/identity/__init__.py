"""
Identity — order numbers and order ids.

    from tillbook import identity as ID

    sequence = ID.MemorySequence()
    match await ID.claim_identity(sequence, datetime.now(UTC)):
        case Ok(ident):
            print(ident.order_number)   # ORD-240305-0001
            print(ident.order_id)       # ord_20240305101500_3f9a0c1d2e4b

Uniqueness:
    order_number — per-day counter claimed atomically from a DailySequence
    order_id     — timestamp + random suffix, unique without coordination

The order store enforces both as unique keys; a clash surfaces as
IdentityCollisionError and the caller claims a fresh identity.
"""

from tillbook.identity._generate import (
    DEFAULT_PREFIX,
    business_day,
    generate_order_number,
    generate_order_id,
)
from tillbook.identity._sequence import (
    DailySequence,
    MemorySequence,
    OrderIdentity,
    claim_identity,
)

__all__ = (
    "DEFAULT_PREFIX",
    "business_day",
    "generate_order_number",
    "generate_order_id",
    "DailySequence",
    "MemorySequence",
    "OrderIdentity",
    "claim_identity",
)
