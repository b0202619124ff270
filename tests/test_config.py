import pytest

from tx_confirmation_notifier import config
from tx_confirmation_notifier.config import load_settings


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch) -> None:
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    for name in (
        "POLL_INTERVAL_SECONDS",
        "APNS_KEY_PATH",
        "ORACLE_MAX_CONCURRENCY",
        "HEALTH_LOG_INTERVAL_SECONDS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_settings_defaults(monkeypatch) -> None:
    monkeypatch.setenv("APNS_TOPIC", "com.example.wallet")

    settings = load_settings()

    assert settings.apns_topic == "com.example.wallet"
    assert settings.poll_interval_seconds == 100.0
    assert settings.apns_key_path is None
    assert settings.blockstream_testnet_url == "https://blockstream.info/testnet/api"
    assert settings.log_level == "INFO"


def test_load_settings_requires_topic(monkeypatch) -> None:
    monkeypatch.delenv("APNS_TOPIC", raising=False)
    with pytest.raises(ValueError):
        load_settings()


def test_load_settings_rejects_zero_concurrency(monkeypatch) -> None:
    monkeypatch.setenv("APNS_TOPIC", "com.example.wallet")
    monkeypatch.setenv("ORACLE_MAX_CONCURRENCY", "0")
    with pytest.raises(ValueError):
        load_settings()


def test_load_settings_rejects_zero_health_interval(monkeypatch) -> None:
    monkeypatch.setenv("APNS_TOPIC", "com.example.wallet")
    monkeypatch.setenv("HEALTH_LOG_INTERVAL_SECONDS", "0")
    with pytest.raises(ValueError):
        load_settings()
