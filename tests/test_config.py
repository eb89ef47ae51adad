import pytest

from pyticketgate.config import GateConfig, RelayConfig, ScannerConfig
from pyticketgate.exceptions import ConfigError, ValidationError


def test_defaults() -> None:
    config = GateConfig()
    assert config.scanner.min_length == 7
    assert config.scanner.max_length == 13
    assert config.scanner.inter_key_timeout_ms == 100
    assert config.scanner.debounce_ms == 3000
    assert config.relay.enabled is True
    assert config.relay.duration_ms == 5000
    assert config.relay.resolved_relay_id == "mock"
    assert config.tzinfo is None


def test_relay_id_follows_endpoint() -> None:
    assert RelayConfig(endpoint="http://relay.local").resolved_relay_id == "http"
    assert RelayConfig(relay_id="mock", endpoint="http://relay.local").resolved_relay_id == "mock"


def test_from_env() -> None:
    config = GateConfig.from_env(
        {
            "TICKETGATE_SCANNER_MIN_LENGTH": "8",
            "TICKETGATE_SCANNER_DEBOUNCE_MS": "1500",
            "TICKETGATE_SCANNER_REQUIRE_TERMINATOR": "no",
            "TICKETGATE_RELAY_ENDPOINT": "http://192.168.1.50:8080",
            "TICKETGATE_RELAY_TIMEOUT_S": "1.5",
            "TICKETGATE_RELAY_ENABLED": "on",
            "TICKETGATE_TIMEZONE": "UTC",
            "UNRELATED": "ignored",
        }
    )
    assert config.scanner.min_length == 8
    assert config.scanner.debounce_ms == 1500
    assert config.scanner.require_terminator is False
    assert config.relay.endpoint == "http://192.168.1.50:8080"
    assert config.relay.timeout_s == 1.5
    assert config.relay.resolved_relay_id == "http"
    assert config.tzinfo.key == "UTC"


def test_from_env_empty_values_use_defaults() -> None:
    config = GateConfig.from_env({"TICKETGATE_RELAY_ENDPOINT": "  "})
    assert config.relay.endpoint is None
    assert config == GateConfig()


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("TICKETGATE_SCANNER_MIN_LENGTH", "seven"),
        ("TICKETGATE_RELAY_TIMEOUT_S", "fast"),
        ("TICKETGATE_RELAY_ENABLED", "maybe"),
        ("TICKETGATE_SCANNER_MAX_LENGTH", "3"),
        ("TICKETGATE_RELAY_DURATION_MS", "0"),
        ("TICKETGATE_TIMEZONE", "Nowhere/Special"),
    ],
)
def test_from_env_invalid(name: str, value: str) -> None:
    with pytest.raises(ConfigError):
        GateConfig.from_env({name: value})


def test_scanner_config_validation() -> None:
    with pytest.raises(ValidationError):
        ScannerConfig(min_length=10, max_length=8)
    with pytest.raises(ValidationError):
        ScannerConfig(terminators=())


def test_gate_config_rejects_negative_retries() -> None:
    with pytest.raises(ValidationError):
        GateConfig(max_conflict_retries=-1)
