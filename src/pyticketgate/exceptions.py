"""Library exceptions.

Domain outcomes (unknown code, expired ticket, ...) are never raised; they are
reported through :class:`pyticketgate.models.Outcome`. Exceptions here signal
faults: bad input, broken configuration, malformed records or unreachable
collaborators.
"""

from __future__ import annotations


class TicketGateError(Exception):
    """Base exception for the library."""

    error_type = "unknown"
    default_error_code: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        detail: str | None = None,
        user_message: str | None = None,
    ) -> None:
        text = message if message is not None else (detail or "")
        super().__init__(text)
        self.error_code = error_code if error_code is not None else self.default_error_code
        self.detail = detail if detail is not None else text
        self.user_message = user_message


class ValidationError(TicketGateError):
    """Raised when inputs fail validation."""

    error_type = "validation"
    default_error_code = "validation_error"


class ConfigError(TicketGateError):
    """Raised when the configuration cannot be used."""

    error_type = "config"
    default_error_code = "config_error"


class RecordError(TicketGateError):
    """Raised when an external record has an unknown shape."""

    error_type = "record"
    default_error_code = "record_error"


class NetworkError(TicketGateError):
    """Raised when network communication fails."""

    error_type = "network"
    default_error_code = "network_error"


class RelayError(TicketGateError):
    """Raised when a door relay returns an error or is misconfigured."""

    error_type = "relay"
    default_error_code = "relay_error"


class StoreError(TicketGateError):
    """Raised when the persistence collaborator fails."""

    error_type = "store"
    default_error_code = "store_error"


class ConflictError(StoreError):
    """Raised when a ticket was modified concurrently."""

    default_error_code = "conflict"
