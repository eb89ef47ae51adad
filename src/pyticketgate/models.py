"""Public data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .exceptions import ValidationError


class TicketStatus(Enum):
    """Stored ticket status."""

    ACTIVE = "ACTIVE"
    INSIDE = "INSIDE"
    LEFT = "LEFT"
    EXPIRED = "EXPIRED"


class Operation(Enum):
    """Scan operation performed at a terminal."""

    ENTRY = "ENTRY"
    CHECK = "CHECK"
    EXIT = "EXIT"


class Outcome(Enum):
    """Result of an admission decision."""

    SUCCESS = "SUCCESS"
    UNKNOWN_CODE = "UNKNOWN_CODE"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    ALREADY_INSIDE = "ALREADY_INSIDE"
    NOT_INSIDE = "NOT_INSIDE"
    TIME_EXHAUSTED = "TIME_EXHAUSTED"


class DecodeStatus(Enum):
    PENDING = "PENDING"
    DECODED = "DECODED"
    REJECTED = "REJECTED"


class RejectReason(Enum):
    INVALID_FORMAT = "INVALID_FORMAT"
    DEBOUNCED = "DEBOUNCED"


@dataclass(frozen=True, slots=True)
class CodeDefinition:
    """A priced ticket class matched by a code selector."""

    id: str
    name: str
    selector: str
    duration_minutes: int
    price: int
    price_per_extra_minute: int
    active: bool = True
    description: str = ""
    branch_id: str | None = None

    def __post_init__(self) -> None:
        if not self.selector:
            raise ValidationError("selector must be a non-empty string.")
        for field_name in ("duration_minutes", "price", "price_per_extra_minute"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(f"{field_name} must be a non-negative integer.")


@dataclass(frozen=True, slots=True)
class Ticket:
    code: str
    definition_id: str
    status: TicketStatus
    first_scan: datetime | None
    last_scan: datetime | None
    allowed_minutes: int
    remaining_minutes: int
    scan_count: int = 0
    branch_id: str | None = None


@dataclass(frozen=True, slots=True)
class VersionedTicket:
    """A ticket as read from a store, with the version used for compare-and-set."""

    ticket: Ticket
    version: int


@dataclass(frozen=True, slots=True)
class AdmissionEvent:
    code: str
    operation: Operation
    terminal_id: str
    timestamp: datetime
    remaining_minutes: int
    overstay_minutes: int = 0


@dataclass(frozen=True, slots=True)
class RelayEvent:
    terminal_id: str
    timestamp: datetime
    duration_ms: int
    success: bool
    mock: bool
    triggered_by: str = "system"


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """Outcome of feeding one key event to a scan decoder."""

    status: DecodeStatus
    code: str | None = None
    reason: RejectReason | None = None
    raw: str | None = None

    @classmethod
    def pending(cls) -> DecodeResult:
        return cls(status=DecodeStatus.PENDING)

    @classmethod
    def decoded(cls, code: str) -> DecodeResult:
        return cls(status=DecodeStatus.DECODED, code=code, raw=code)

    @classmethod
    def rejected(cls, reason: RejectReason, raw: str) -> DecodeResult:
        return cls(status=DecodeStatus.REJECTED, reason=reason, raw=raw)


@dataclass(frozen=True, slots=True)
class EntryResult:
    outcome: Outcome
    ticket: Ticket | None = None
    event: AdmissionEvent | None = None
    remaining_minutes: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def open_door(self) -> bool:
        return self.success


@dataclass(frozen=True, slots=True)
class CheckResult:
    outcome: Outcome
    ticket: Ticket | None = None
    event: AdmissionEvent | None = None
    remaining_minutes: int | None = None
    overstay_minutes: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def open_door(self) -> bool:
        # Check terminals have no door.
        return False


@dataclass(frozen=True, slots=True)
class ExitResult:
    outcome: Outcome
    ticket: Ticket | None = None
    event: AdmissionEvent | None = None
    remaining_minutes: int | None = None
    overstay_minutes: int | None = None
    overstay_charge: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def open_door(self) -> bool:
        return self.success and not self.overstay_minutes


AdmissionResult = EntryResult | CheckResult | ExitResult


@dataclass(frozen=True, slots=True)
class ScanResult:
    """What a kiosk terminal shows after a scan."""

    success: bool
    message: str
    code: str | None = None
    outcome: Outcome | None = None
    reason: RejectReason | None = None
    ticket: Ticket | None = None
    remaining_minutes: int | None = None
    overstay_minutes: int | None = None
    overstay_charge: int | None = None
    should_open_door: bool = False
