from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str
    blockstream_mainnet_url: str
    blockstream_testnet_url: str
    apns_gateway_url: str
    apns_topic: str
    apns_cert_path: str
    apns_key_path: str | None
    poll_interval_seconds: float
    oracle_max_concurrency: int
    http_timeout_seconds: float
    health_log_interval_seconds: int
    log_level: str


def _required(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def load_settings() -> Settings:
    load_dotenv()
    concurrency = _optional_int("ORACLE_MAX_CONCURRENCY", 8)
    if concurrency < 1:
        raise ValueError("ORACLE_MAX_CONCURRENCY must be at least 1")
    health_interval = _optional_int("HEALTH_LOG_INTERVAL_SECONDS", 600)
    if health_interval < 1:
        raise ValueError("HEALTH_LOG_INTERVAL_SECONDS must be at least 1")
    return Settings(
        database_url=os.getenv(
            "DATABASE_URL", "sqlite+aiosqlite:///./pending_transactions.db"
        ).strip(),
        blockstream_mainnet_url=os.getenv(
            "BLOCKSTREAM_MAINNET_URL", "https://blockstream.info/api"
        ).strip(),
        blockstream_testnet_url=os.getenv(
            "BLOCKSTREAM_TESTNET_URL", "https://blockstream.info/testnet/api"
        ).strip(),
        apns_gateway_url=os.getenv(
            "APNS_GATEWAY_URL", "https://api.sandbox.push.apple.com"
        ).strip(),
        apns_topic=_required("APNS_TOPIC"),
        apns_cert_path=os.getenv("APNS_CERT_PATH", "./config/apns-dev.pem").strip(),
        apns_key_path=os.getenv("APNS_KEY_PATH", "").strip() or None,
        poll_interval_seconds=_optional_float("POLL_INTERVAL_SECONDS", 100.0),
        oracle_max_concurrency=concurrency,
        http_timeout_seconds=_optional_float("HTTP_TIMEOUT_SECONDS", 15.0),
        health_log_interval_seconds=health_interval,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
