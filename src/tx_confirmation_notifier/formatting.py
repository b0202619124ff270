from __future__ import annotations

from decimal import Decimal
from typing import Any

from .types import ChainTx, ResolvedNotification

SATOSHI_PER_BTC = Decimal(100_000_000)


def compute_received_amount(address: str, tx: ChainTx) -> int:
    return sum(output.value for output in tx.outputs if output.address == address)


def satoshi_to_btc(satoshi: int) -> str:
    btc = (Decimal(satoshi) / SATOSHI_PER_BTC).normalize()
    if btc.is_zero():
        return "0"
    return format(btc, "f")


def notification_title(notification: ResolvedNotification) -> str:
    if notification.transaction.is_broadcasted:
        return "Transaction Sent"
    return "Received Transaction"


def notification_body(notification: ResolvedNotification) -> str:
    btc = satoshi_to_btc(notification.amount)
    if notification.transaction.is_broadcasted:
        return f"Withdrawn {btc} BTC"
    return f"Received {btc} BTC"


def build_apns_payload(notification: ResolvedNotification) -> dict[str, Any]:
    return {
        "aps": {
            "badge": 1,
            "alert": {
                "title": notification_title(notification),
                "body": notification_body(notification),
            },
            "sound": "default",
        },
        "walletId": notification.transaction.wallet_id,
    }
