"""SQLAlchemy storage backend for Kingmaker."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Sequence

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .base import (
    AuditStore,
    InventoryEntry,
    ItemStore,
    Transaction,
    TransactionKind,
    TransactionStore,
)


class Base(DeclarativeBase):
    pass


class TransactionTable(Base):
    __tablename__ = "kingmaker_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(BigInteger, index=True)
    amount: Mapped[int] = mapped_column(Integer)
    kind: Mapped[str] = mapped_column(String(16))
    counterparty_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class InventoryTable(Base):
    __tablename__ = "kingmaker_inventory"
    __table_args__ = (UniqueConstraint("owner_id", "item_kind", name="uq_inventory_owner_kind"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    item_kind: Mapped[str] = mapped_column(String(64))
    quantity: Mapped[int] = mapped_column(Integer, default=0)


class AuditTable(Base):
    __tablename__ = "kingmaker_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    action: Mapped[str] = mapped_column(String(128))
    payload: Mapped[dict] = mapped_column(JSON)


class AsyncSQLAlchemyStorage:
    """Bundle of async stores backed by SQLAlchemy."""

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            yield session

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def transaction_store(self) -> "AsyncSQLAlchemyTransactionStore":
        return AsyncSQLAlchemyTransactionStore(self._session_factory)

    def item_store(self) -> "AsyncSQLAlchemyItemStore":
        return AsyncSQLAlchemyItemStore(self._session_factory)

    def audit_store(self) -> "AsyncSQLAlchemyAuditStore":
        return AsyncSQLAlchemyAuditStore(self._session_factory)


def _to_transaction(row: TransactionTable) -> Transaction:
    timestamp = row.timestamp
    # SQLite drops tzinfo on the way back.
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return Transaction(
        id=row.id,
        subject_id=row.subject_id,
        amount=row.amount,
        kind=TransactionKind(row.kind),
        counterparty_id=row.counterparty_id,
        reason=row.reason,
        timestamp=timestamp,
    )


class AsyncSQLAlchemyTransactionStore(TransactionStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, transactions: Sequence[Transaction]) -> list[Transaction]:
        async with self._session_factory() as session:
            rows = [
                TransactionTable(
                    subject_id=tx.subject_id,
                    amount=tx.amount,
                    kind=tx.kind.value,
                    counterparty_id=tx.counterparty_id,
                    reason=tx.reason,
                    timestamp=tx.timestamp,
                )
                for tx in transactions
            ]
            session.add_all(rows)
            await session.commit()
            return [_to_transaction(row) for row in rows]

    async def balance(self, subject_id: int) -> int:
        async with self._session_factory() as session:
            stmt = select(func.coalesce(func.sum(TransactionTable.amount), 0)).where(
                TransactionTable.subject_id == subject_id
            )
            return int((await session.execute(stmt)).scalar_one())

    async def recent_for_subject(self, subject_id: int, limit: int = 10) -> Sequence[Transaction]:
        async with self._session_factory() as session:
            stmt = (
                select(TransactionTable)
                .where(TransactionTable.subject_id == subject_id)
                .order_by(TransactionTable.id.desc())
                .limit(limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [_to_transaction(row) for row in rows]

    async def subjects(self) -> Sequence[int]:
        async with self._session_factory() as session:
            stmt = select(TransactionTable.subject_id).distinct()
            return list((await session.execute(stmt)).scalars().all())


class AsyncSQLAlchemyItemStore(ItemStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, owner_id: int, item_kind: str) -> InventoryEntry | None:
        async with self._session_factory() as session:
            row = await self._find(session, owner_id, item_kind)
            if row is None:
                return None
            return InventoryEntry(owner_id=row.owner_id, item_kind=row.item_kind, quantity=row.quantity)

    async def adjust(self, owner_id: int, item_kind: str, delta: int) -> InventoryEntry:
        async with self._session_factory() as session:
            row = await self._find(session, owner_id, item_kind)
            if row is None:
                row = InventoryTable(owner_id=owner_id, item_kind=item_kind, quantity=0)
                session.add(row)
            quantity = row.quantity + delta
            if quantity < 0:
                await session.rollback()
                raise ValueError(f"Quantity of {item_kind} for {owner_id} would become {quantity}")
            row.quantity = quantity
            await session.commit()
            return InventoryEntry(owner_id=owner_id, item_kind=item_kind, quantity=quantity)

    async def entries(self, owner_id: int | None = None) -> Sequence[InventoryEntry]:
        async with self._session_factory() as session:
            stmt = select(InventoryTable).order_by(InventoryTable.id)
            if owner_id is not None:
                stmt = stmt.where(InventoryTable.owner_id == owner_id)
            rows = (await session.execute(stmt)).scalars().all()
            return [
                InventoryEntry(owner_id=row.owner_id, item_kind=row.item_kind, quantity=row.quantity)
                for row in rows
            ]

    async def _find(
        self, session: AsyncSession, owner_id: int, item_kind: str
    ) -> InventoryTable | None:
        stmt = select(InventoryTable).where(
            InventoryTable.owner_id == owner_id, InventoryTable.item_kind == item_kind
        )
        return (await session.execute(stmt)).scalar_one_or_none()


class AsyncSQLAlchemyAuditStore(AuditStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_entry(self, action: str, payload: dict) -> None:
        async with self._session_factory() as session:
            session.add(
                AuditTable(
                    created_at=datetime.now(timezone.utc),
                    action=action,
                    payload=dict(payload),
                )
            )
            await session.commit()
