"""
Storage — order stores, daily sequences, document codec.

    from tillbook import storage as S

    # Tests / single process
    orders, sequence = S.MemoryOrderStore(), MemorySequence()

    # SQLAlchemy (sqlite+aiosqlite, postgresql+asyncpg, ...)
    session_factory, engine = await S.create_database(settings.database_url)
    orders = S.SQLAlchemyOrderStore(session_factory)
    sequence = S.SQLAlchemySequence(session_factory)

Contract (OrderStore):
    get(order_id)   → Ok(Order | None)
    insert(order)   → Ok(order) | IdentityCollisionError
    replace(order)  → Ok(order, version + 1) | WriteConflictError | OrderNotFoundError
    query(q)        → Ok([Order, ...]) newest first
"""

from tillbook.storage._protocol import OrderStore
from tillbook.storage._memory import MemoryOrderStore
from tillbook.storage._codec import (
    Document,
    order_to_document,
    order_from_document,
    parse_payment_method,
    parse_payment_status,
    parse_order_status,
)
from tillbook.storage._sqlalchemy import (
    Base,
    OrderTable,
    OrderSequenceTable,
    SQLAlchemyOrderStore,
    SQLAlchemySequence,
    open_database,
    create_tables,
    create_database,
)

__all__ = (
    # Protocol
    "OrderStore",
    # Memory
    "MemoryOrderStore",
    # Codec
    "Document",
    "order_to_document",
    "order_from_document",
    "parse_payment_method",
    "parse_payment_status",
    "parse_order_status",
    # SQLAlchemy
    "Base",
    "OrderTable",
    "OrderSequenceTable",
    "SQLAlchemyOrderStore",
    "SQLAlchemySequence",
    "open_database",
    "create_tables",
    "create_database",
)
