import asyncio
import json

import httpx

from tx_confirmation_notifier.apns_notifier import ApnsNotifier
from tx_confirmation_notifier.types import PendingTransaction, ResolvedNotification

GATEWAY = "https://apns.example"


def _notification() -> ResolvedNotification:
    pending = PendingTransaction(
        id=7,
        address="tb1qwatched",
        is_broadcasted=False,
        tx_id=None,
        is_testnet=True,
        wallet_id="wallet-9",
        token="devtoken",
    )
    return ResolvedNotification(transaction=pending, amount=50000, tx_id="abc")


def _notifier(handler) -> ApnsNotifier:
    return ApnsNotifier(
        GATEWAY,
        "com.example.wallet",
        cert_path="unused.pem",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_build_headers_sets_collapse_id_and_expiration() -> None:
    notifier = _notifier(lambda request: httpx.Response(200))
    headers = notifier.build_headers(_notification(), now=1_700_000_000.5)

    assert headers["apns-topic"] == "com.example.wallet"
    assert headers["apns-push-type"] == "alert"
    assert headers["apns-collapse-id"] == "tb1qwatched"
    assert headers["apns-expiration"] == "1700086400"


def test_dispatch_posts_payload_to_device_path() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, headers={"apns-id": "x"})

    ok = asyncio.run(_notifier(handler).dispatch(_notification()))

    assert ok is True
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{GATEWAY}/3/device/devtoken"
    body = json.loads(request.content)
    assert body["walletId"] == "wallet-9"
    assert body["aps"]["alert"]["title"] == "Received Transaction"
    assert body["aps"]["alert"]["body"] == "Received 0.0005 BTC"


def test_dispatch_absorbs_rejection() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"reason": "BadDeviceToken"})

    assert asyncio.run(_notifier(handler).dispatch(_notification())) is False


def test_dispatch_absorbs_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert asyncio.run(_notifier(handler).dispatch(_notification())) is False
