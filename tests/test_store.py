import asyncio

import pytest

from tx_confirmation_notifier.store import SqlPendingTransactionStore


def test_add_list_and_bulk_delete(tmp_path) -> None:
    async def scenario():
        store = SqlPendingTransactionStore(f"sqlite+aiosqlite:///{tmp_path / 'pending.db'}")
        try:
            await store.create_tables()
            first = await store.add("A", wallet_id="w1", token="t1", is_testnet=True)
            second = await store.add("B", wallet_id="w2", token="t2", is_broadcasted=True, tx_id="tx-b")
            third = await store.add("C", wallet_id="w3", token="t3")

            listed = await store.list_pending()
            deleted = await store.delete_by_ids({first.id, third.id, 999})
            remaining = await store.list_pending()
            return first, second, listed, deleted, remaining
        finally:
            await store.close()

    first, second, listed, deleted, remaining = asyncio.run(scenario())

    assert [tx.address for tx in listed] == ["A", "B", "C"]
    assert listed[0] == first
    assert listed[0].is_testnet is True
    assert listed[1].tx_id == "tx-b"
    assert deleted == 2
    assert remaining == [second]


def test_delete_with_no_ids_is_a_noop(tmp_path) -> None:
    async def scenario():
        store = SqlPendingTransactionStore(f"sqlite+aiosqlite:///{tmp_path / 'pending.db'}")
        try:
            await store.create_tables()
            await store.add("A", wallet_id="w1", token="t1")
            return await store.delete_by_ids(set()), await store.list_pending()
        finally:
            await store.close()

    deleted, remaining = asyncio.run(scenario())
    assert deleted == 0
    assert len(remaining) == 1


def test_broadcasted_requires_tx_id(tmp_path) -> None:
    async def scenario():
        store = SqlPendingTransactionStore(f"sqlite+aiosqlite:///{tmp_path / 'pending.db'}")
        try:
            await store.create_tables()
            await store.add("A", wallet_id="w1", token="t1", is_broadcasted=True)
        finally:
            await store.close()

    with pytest.raises(ValueError):
        asyncio.run(scenario())
