from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PendingTransaction:
    id: int
    address: str
    is_broadcasted: bool
    tx_id: str | None
    is_testnet: bool
    wallet_id: str
    token: str


@dataclass(frozen=True)
class ChainTxOutput:
    address: str | None
    value: int


@dataclass(frozen=True)
class ChainTx:
    txid: str
    outputs: tuple[ChainTxOutput, ...]
    confirmed: bool | None = None


@dataclass(frozen=True)
class ResolvedNotification:
    transaction: PendingTransaction
    amount: int
    tx_id: str
