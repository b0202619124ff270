from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Protocol

from .formatting import compute_received_amount
from .store import PendingTransactionStore
from .types import ChainTx, PendingTransaction, ResolvedNotification

logger = logging.getLogger(__name__)


class ChainOracle(Protocol):
    async def list_transactions_for_address(self, address: str, is_testnet: bool) -> list[ChainTx]: ...

    async def get_transaction_by_id(self, tx_id: str, is_testnet: bool) -> ChainTx | None: ...

    async def close(self) -> None: ...


class NotificationSink(Protocol):
    async def dispatch(self, notification: ResolvedNotification) -> bool: ...

    async def close(self) -> None: ...


@dataclass
class ServiceContext:
    """Process-lifetime handles shared by every tick."""

    store: PendingTransactionStore
    oracle: ChainOracle
    notifier: NotificationSink


@dataclass
class Metrics:
    ticks: int = 0
    tick_failures: int = 0
    oracle_failures: int = 0
    transactions_resolved: int = 0
    alerts_sent: int = 0
    alerts_failed: int = 0


@dataclass(frozen=True)
class TickResult:
    pending: int
    deleted: int
    notified: int
    failed: int


class ReconciliationService:
    def __init__(
        self,
        context: ServiceContext,
        poll_interval_seconds: float = 100.0,
        max_concurrency: int = 8,
        health_log_interval_seconds: int = 600,
    ) -> None:
        self.context = context
        self.poll_interval_seconds = poll_interval_seconds
        self.health_log_interval_seconds = health_log_interval_seconds
        self.max_concurrency = max_concurrency
        self.metrics = Metrics()

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        stop = stop_event or asyncio.Event()
        health_task = asyncio.create_task(self._health_loop())
        store_ready = False
        try:
            while not stop.is_set():
                try:
                    if not store_ready:
                        await self.context.store.create_tables()
                        store_ready = True
                    await self.reconcile_once()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    self.metrics.tick_failures += 1
                    logger.exception("Reconciliation tick failed; retrying next tick")

                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop.wait(), timeout=self.poll_interval_seconds)
        finally:
            health_task.cancel()
            await asyncio.gather(health_task, return_exceptions=True)
            logger.info("Reconciliation loop stopped")

    async def reconcile_once(self) -> TickResult:
        self.metrics.ticks += 1
        pending = await self.context.store.list_pending()
        logger.info("Pulled %d pending transactions", len(pending))
        if not pending:
            return TickResult(pending=0, deleted=0, notified=0, failed=0)

        semaphore = asyncio.Semaphore(self.max_concurrency)
        resolved = await asyncio.gather(
            *(self._resolve_guarded(tx, semaphore) for tx in pending)
        )

        to_delete: set[int] = set()
        to_notify: list[ResolvedNotification] = []
        for transaction, notifications in zip(pending, resolved):
            if notifications:
                to_delete.add(transaction.id)
                to_notify.extend(notifications)

        deleted = 0
        if to_delete:
            deleted = await self.context.store.delete_by_ids(to_delete)
            self.metrics.transactions_resolved += len(to_delete)

        outcomes = await asyncio.gather(*(self.context.notifier.dispatch(n) for n in to_notify))
        sent = sum(1 for ok in outcomes if ok)
        failed = len(outcomes) - sent
        self.metrics.alerts_sent += sent
        self.metrics.alerts_failed += failed

        logger.info(
            "Tick done pending=%d resolved=%d deleted=%d notified=%d failed=%d",
            len(pending),
            len(to_delete),
            deleted,
            sent,
            failed,
        )
        return TickResult(pending=len(pending), deleted=deleted, notified=sent, failed=failed)

    async def _resolve_guarded(
        self, transaction: PendingTransaction, semaphore: asyncio.Semaphore
    ) -> list[ResolvedNotification]:
        async with semaphore:
            try:
                return await self._resolve(transaction)
            except Exception as exc:
                self.metrics.oracle_failures += 1
                logger.warning(
                    "Oracle lookup failed for pending id=%s tx=%r: %s: %s",
                    transaction.id,
                    transaction.tx_id,
                    type(exc).__name__,
                    exc,
                )
                return []

    async def _resolve(self, transaction: PendingTransaction) -> list[ResolvedNotification]:
        oracle = self.context.oracle

        if not transaction.is_broadcasted:
            chain_txs = await oracle.list_transactions_for_address(
                transaction.address, transaction.is_testnet
            )
            return [
                ResolvedNotification(
                    transaction=transaction,
                    amount=compute_received_amount(transaction.address, tx),
                    tx_id=tx.txid,
                )
                for tx in chain_txs
            ]

        if not transaction.tx_id:
            logger.warning("Broadcasted pending id=%s has no tx_id; leaving pending", transaction.id)
            return []

        tx = await oracle.get_transaction_by_id(transaction.tx_id, transaction.is_testnet)
        if tx is None:
            logger.debug("Tx %s not visible yet", transaction.tx_id)
            return []

        logger.debug(
            "Broadcast %s seen for %s (confirmed=%s)",
            tx.txid,
            transaction.address,
            tx.confirmed,
        )
        amount = compute_received_amount(transaction.address, tx)
        return [ResolvedNotification(transaction=transaction, amount=-amount, tx_id=tx.txid)]

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.health_log_interval_seconds)
            logger.info(
                (
                    "health ticks=%d tick_failures=%d oracle_failures=%d "
                    "resolved=%d alerts_sent=%d alerts_failed=%d"
                ),
                self.metrics.ticks,
                self.metrics.tick_failures,
                self.metrics.oracle_failures,
                self.metrics.transactions_resolved,
                self.metrics.alerts_sent,
                self.metrics.alerts_failed,
            )
