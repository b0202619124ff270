from __future__ import annotations

import logging
import ssl
import time

import httpx

from .formatting import build_apns_payload
from .types import ResolvedNotification

logger = logging.getLogger(__name__)

EXPIRATION_SECONDS = 24 * 3600


class ApnsNotifier:
    def __init__(
        self,
        gateway_url: str,
        topic: str,
        cert_path: str,
        key_path: str | None = None,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.gateway_url = gateway_url.rstrip("/")
        self.topic = topic
        self.cert_path = cert_path
        self.key_path = key_path
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        # The certificate is only read once the first push goes out.
        if self._client is None:
            context = ssl.create_default_context()
            context.load_cert_chain(certfile=self.cert_path, keyfile=self.key_path)
            self._client = httpx.AsyncClient(http2=True, verify=context, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_headers(self, notification: ResolvedNotification, now: float | None = None) -> dict[str, str]:
        issued_at = time.time() if now is None else now
        return {
            "apns-topic": self.topic,
            "apns-push-type": "alert",
            "apns-collapse-id": notification.transaction.address,
            "apns-expiration": str(int(issued_at + EXPIRATION_SECONDS)),
        }

    async def send(self, notification: ResolvedNotification) -> None:
        client = self._get_client()
        token = notification.transaction.token
        response = await client.post(
            f"{self.gateway_url}/3/device/{token}",
            json=build_apns_payload(notification),
            headers=self.build_headers(notification),
        )
        if response.status_code != 200:
            reason = None
            try:
                reason = response.json().get("reason")
            except Exception:
                pass
            raise RuntimeError(
                f"APNs rejected push (status={response.status_code} reason={reason} "
                f"apns-id={response.headers.get('apns-id')})"
            )

    async def dispatch(self, notification: ResolvedNotification) -> bool:
        """Send one push without letting failures escape. Returns delivery acceptance."""
        try:
            await self.send(notification)
        except Exception as exc:
            logger.error(
                "Failed to send push for wallet=%s tx=%s: %s",
                notification.transaction.wallet_id,
                notification.tx_id,
                exc,
            )
            return False

        logger.info(
            "Push sent wallet=%s tx=%s amount=%d",
            notification.transaction.wallet_id,
            notification.tx_id,
            notification.amount,
        )
        return True
