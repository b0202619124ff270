from __future__ import annotations

import logging
from typing import Any

import httpx

from .types import ChainTx, ChainTxOutput

logger = logging.getLogger(__name__)


class BlockstreamClient:
    """Esplora API client for mainnet and testnet lookups.

    The address query swallows request failures and reports "no transactions",
    while the single transaction query lets them propagate. Callers of
    ``get_transaction_by_id`` must guard against ``httpx.HTTPError``.
    """

    def __init__(
        self,
        mainnet_url: str,
        testnet_url: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.mainnet_url = mainnet_url.rstrip("/")
        self.testnet_url = testnet_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    def _base(self, is_testnet: bool) -> str:
        return self.testnet_url if is_testnet else self.mainnet_url

    async def list_transactions_for_address(self, address: str, is_testnet: bool) -> list[ChainTx]:
        url = f"{self._base(is_testnet)}/address/{address}/txs"
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            logger.warning("Error getting transactions for address %s: %s", address, exc)
            return []

        if not isinstance(data, list):
            return []

        txs: list[ChainTx] = []
        for record in data:
            tx = parse_chain_tx(record)
            if tx is not None:
                txs.append(tx)
        return txs

    async def get_transaction_by_id(self, tx_id: str, is_testnet: bool) -> ChainTx | None:
        resp = await self._client.get(f"{self._base(is_testnet)}/tx/{tx_id}")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()

        if not resp.content.strip():
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.debug("Undecodable body for tx %s", tx_id)
            return None
        return parse_chain_tx(data)


def parse_chain_tx(record: Any) -> ChainTx | None:
    if not isinstance(record, dict):
        return None

    txid = str(record.get("txid") or "").strip()
    if not txid:
        return None

    outputs: list[ChainTxOutput] = []
    vouts = record.get("vout")
    if isinstance(vouts, list):
        for vout in vouts:
            if not isinstance(vout, dict):
                continue
            try:
                value = int(vout.get("value", 0) or 0)
            except (TypeError, ValueError):
                continue
            address = vout.get("scriptpubkey_address")
            outputs.append(ChainTxOutput(address=str(address) if address else None, value=value))

    confirmed = None
    status = record.get("status")
    if isinstance(status, dict) and "confirmed" in status:
        confirmed = bool(status["confirmed"])

    return ChainTx(txid=txid, outputs=tuple(outputs), confirmed=confirmed)
