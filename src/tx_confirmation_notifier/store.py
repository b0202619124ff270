from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Boolean, DateTime, Integer, String, delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .types import PendingTransaction

logger = logging.getLogger(__name__)


class PendingTransactionStore(Protocol):
    async def create_tables(self) -> None: ...

    async def list_pending(self) -> list[PendingTransaction]: ...

    async def delete_by_ids(self, ids: set[int]) -> int: ...


class Base(DeclarativeBase):
    pass


class PendingTransactionRow(Base):
    __tablename__ = "pending_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    is_broadcasted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tx_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_testnet: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    wallet_id: Mapped[str] = mapped_column(String(128), nullable=False)
    token: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_pending(self) -> PendingTransaction:
        return PendingTransaction(
            id=self.id,
            address=self.address,
            is_broadcasted=self.is_broadcasted,
            tx_id=self.tx_id,
            is_testnet=self.is_testnet,
            wallet_id=self.wallet_id,
            token=self.token,
        )


class SqlPendingTransactionStore:
    def __init__(self, database_url: str) -> None:
        self.engine = create_async_engine(database_url)
        self._sessions = async_sessionmaker(self.engine, expire_on_commit=False)

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    async def add(
        self,
        address: str,
        wallet_id: str,
        token: str,
        is_broadcasted: bool = False,
        tx_id: str | None = None,
        is_testnet: bool = False,
    ) -> PendingTransaction:
        if is_broadcasted and not tx_id:
            raise ValueError("tx_id is required for a broadcasted transaction")

        row = PendingTransactionRow(
            address=address,
            wallet_id=wallet_id,
            token=token,
            is_broadcasted=is_broadcasted,
            tx_id=tx_id,
            is_testnet=is_testnet,
        )
        async with self._sessions.begin() as session:
            session.add(row)
            await session.flush()
            return row.to_pending()

    async def list_pending(self) -> list[PendingTransaction]:
        async with self._sessions() as session:
            result = await session.execute(
                select(PendingTransactionRow).order_by(PendingTransactionRow.id)
            )
            return [row.to_pending() for row in result.scalars()]

    async def delete_by_ids(self, ids: Iterable[int]) -> int:
        id_set = set(ids)
        if not id_set:
            return 0
        async with self._sessions.begin() as session:
            result = await session.execute(
                delete(PendingTransactionRow).where(PendingTransactionRow.id.in_(id_set))
            )
        deleted = result.rowcount or 0
        logger.debug("Deleted %d pending transactions", deleted)
        return deleted
