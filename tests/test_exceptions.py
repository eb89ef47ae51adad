from pyticketgate.exceptions import (
    ConfigError,
    ConflictError,
    NetworkError,
    RecordError,
    RelayError,
    StoreError,
    TicketGateError,
    ValidationError,
)


def test_error_defaults() -> None:
    exc = TicketGateError("base error")
    assert exc.error_type == "unknown"
    assert exc.error_code is None
    assert exc.detail == "base error"
    assert exc.user_message is None


def test_error_detail_fallback() -> None:
    exc = RelayError(detail="short detail")
    assert str(exc) == "short detail"
    assert exc.detail == "short detail"
    assert exc.error_code == "relay_error"


def test_error_overrides() -> None:
    exc = NetworkError(
        "relay unreachable",
        error_code="relay_timeout",
        detail="timeout talking to relay server",
        user_message="Door could not be opened. Please call staff.",
    )
    assert exc.error_type == "network"
    assert exc.error_code == "relay_timeout"
    assert exc.detail == "timeout talking to relay server"
    assert exc.user_message == "Door could not be opened. Please call staff."


def test_error_types_have_codes() -> None:
    assert ValidationError("nope").error_code == "validation_error"
    assert ConfigError("nope").error_code == "config_error"
    assert RecordError("nope").error_code == "record_error"
    assert NetworkError("nope").error_code == "network_error"
    assert RelayError("nope").error_code == "relay_error"
    assert StoreError("nope").error_code == "store_error"
    assert ConflictError("nope").error_code == "conflict"


def test_conflict_is_a_store_error() -> None:
    exc = ConflictError("lost race")
    assert isinstance(exc, StoreError)
    assert exc.error_type == "store"
