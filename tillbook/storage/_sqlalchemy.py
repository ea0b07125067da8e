"""
SQLAlchemy integration — async order store + daily sequence.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///tillbook.db")

    orders = SQLAlchemyOrderStore(session_factory)
    sequence = SQLAlchemySequence(session_factory)

Tables:
    orders           one row per order; the full order lives in `document`
                     (JSON), the indexed columns mirror it for queries
    order_sequences  one row per business day; `issued` counts numbers handed out
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, cast

from sqlalchemy import Date, DateTime, Integer, String, Text, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from tillbook.errors import (
    BillingError,
    IdentityCollisionError,
    OrderNotFoundError,
    StoreError,
    WriteConflictError,
)
from tillbook.orders._query import OrderQuery
from tillbook.orders._types import Order
from tillbook.storage._codec import order_from_document, order_to_document

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class OrderTable(Base):
    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    owner_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    order_status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    # naive UTC
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    document: Mapped[str] = mapped_column(Text, nullable=False)


class OrderSequenceTable(Base):
    __tablename__ = "order_sequences"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    issued: Mapped[int] = mapped_column(Integer, nullable=False)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _columns(order: Order) -> dict[str, Any]:
    return {
        "order_number": order.order_number,
        "owner_user_id": order.owner_user_id,
        "order_status": order.order_status.value,
        "payment_status": order.payment_status.value,
        "created_at": _naive_utc(order.created_at),
        "version": order.version,
        "document": json.dumps(order_to_document(order)),
    }


def _decode_row(row: OrderTable) -> Result[Order, BillingError]:
    match order_from_document(json.loads(row.document)):
        case Ok(order):
            return Ok(order)
        case Error(e):
            logger.error("corrupt order document %s: %s", row.order_id, e.message)
            return Error(
                StoreError(f"corrupt order document: {e.message}", e, order_id=row.order_id)
            )


# ═══════════════════════════════════════════════════════════════════════════════
# Order Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyOrderStore:
    """
    Order store over an async SQLAlchemy session factory.

    Note: replace() is a single conditional UPDATE on (order_id, version), so
    two writers racing on one order can't both win.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, order_id: str) -> Result[Order | None, BillingError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(OrderTable, order_id)
        except Exception as e:
            return Error(StoreError(f"Failed to get: {e}", e, order_id=order_id))
        if row is None:
            return Ok(None)
        return _decode_row(row)

    async def insert(self, order: Order) -> Result[Order, BillingError]:
        try:
            async with self._session_factory() as session:
                session.add(OrderTable(order_id=order.order_id, **_columns(order)))
                await session.commit()
                return Ok(order)
        except IntegrityError:
            return Error(
                IdentityCollisionError(
                    "order identity already taken",
                    order_id=order.order_id,
                    order_number=order.order_number,
                )
            )
        except Exception as e:
            return Error(StoreError(f"Failed to insert: {e}", e, order_id=order.order_id))

    async def replace(self, order: Order) -> Result[Order, BillingError]:
        stored = replace(order, version=order.version + 1)
        try:
            async with self._session_factory() as session:
                stmt = (
                    update(OrderTable)
                    .where(OrderTable.order_id == order.order_id)
                    .where(OrderTable.version == order.version)
                    .values(**_columns(stored))
                )
                cursor = cast(CursorResult[Any], await session.execute(stmt))
                await session.commit()
                if cursor.rowcount > 0:
                    return Ok(stored)

                current = await session.get(OrderTable, order.order_id)
        except Exception as e:
            return Error(StoreError(f"Failed to replace: {e}", e, order_id=order.order_id))

        if current is None:
            return Error(OrderNotFoundError("order not found", order_id=order.order_id))
        return Error(
            WriteConflictError(
                "order was modified concurrently",
                order_id=order.order_id,
                expected_version=order.version,
                actual_version=current.version,
            )
        )

    async def query(self, query: OrderQuery) -> Result[list[Order], BillingError]:
        stmt = select(OrderTable)
        if query.owner_user_id is not None:
            stmt = stmt.where(OrderTable.owner_user_id == query.owner_user_id)
        if query.order_statuses:
            stmt = stmt.where(
                OrderTable.order_status.in_([s.value for s in query.order_statuses])
            )
        if query.payment_statuses:
            stmt = stmt.where(
                OrderTable.payment_status.in_([s.value for s in query.payment_statuses])
            )
        if query.created_from is not None:
            stmt = stmt.where(OrderTable.created_at >= _naive_utc(query.created_from))
        if query.created_to is not None:
            stmt = stmt.where(OrderTable.created_at < _naive_utc(query.created_to))
        stmt = stmt.order_by(OrderTable.created_at.desc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except Exception as e:
            return Error(StoreError(f"Failed to query: {e}", e))

        orders: list[Order] = []
        for row in rows:
            match _decode_row(row):
                case Ok(order):
                    orders.append(order)
                case Error(e):
                    return Error(e)
        return Ok(orders)


# ═══════════════════════════════════════════════════════════════════════════════
# Daily Sequence
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemySequence:
    """
    Daily sequence backed by the order_sequences table.

    Note: One INSERT … ON CONFLICT DO UPDATE … RETURNING per claim; the
    database serialises concurrent claims on the same day row.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def next_count(self, day: date) -> Result[int, BillingError]:
        try:
            async with self._session_factory() as session:
                dialect = session.get_bind().dialect.name
                insert = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = (
                    insert(OrderSequenceTable)
                    .values(day=day, issued=1)
                    .on_conflict_do_update(
                        index_elements=[OrderSequenceTable.day],
                        set_={"issued": OrderSequenceTable.issued + 1},
                    )
                    .returning(OrderSequenceTable.issued)
                )
                issued = (await session.execute(stmt)).scalar_one()
                await session.commit()
                return Ok(issued - 1)
        except Exception as e:
            logger.error("sequence claim failed for %s: %s", day, e)
            return Error(StoreError(f"Failed to claim sequence: {e}", e, day=day))


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


def open_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Return (session_factory, engine) without touching the schema."""
    engine = create_async_engine(url, echo=False)
    return async_sessionmaker(engine, expire_on_commit=False), engine


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    session_factory, engine = open_database(url)
    await create_tables(engine)
    return session_factory, engine


__all__ = (
    "Base",
    "OrderTable",
    "OrderSequenceTable",
    "SQLAlchemyOrderStore",
    "SQLAlchemySequence",
    "open_database",
    "create_tables",
    "create_database",
)
