from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from .apns_notifier import ApnsNotifier
from .blockstream import BlockstreamClient
from .config import Settings, load_settings
from .service import ReconciliationService, ServiceContext
from .store import SqlPendingTransactionStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_context(settings: Settings) -> ServiceContext:
    return ServiceContext(
        store=SqlPendingTransactionStore(settings.database_url),
        oracle=BlockstreamClient(
            settings.blockstream_mainnet_url,
            settings.blockstream_testnet_url,
            timeout=settings.http_timeout_seconds,
        ),
        notifier=ApnsNotifier(
            settings.apns_gateway_url,
            settings.apns_topic,
            settings.apns_cert_path,
            key_path=settings.apns_key_path,
            timeout=settings.http_timeout_seconds,
        ),
    )


async def _main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    context = build_context(settings)
    service = ReconciliationService(
        context,
        poll_interval_seconds=settings.poll_interval_seconds,
        max_concurrency=settings.oracle_max_concurrency,
        health_log_interval_seconds=settings.health_log_interval_seconds,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    try:
        logger.info("Using %s store", settings.database_url.split("://", 1)[0])
        await service.run(stop)
    finally:
        await context.notifier.close()
        await context.oracle.close()
        await context.store.close()


def main() -> None:
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
