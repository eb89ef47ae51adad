"""pyTicketGate package."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .config import GateConfig, RelayConfig, ScannerConfig
from .exceptions import (
    ConfigError,
    ConflictError,
    NetworkError,
    RecordError,
    RelayError,
    StoreError,
    TicketGateError,
    ValidationError,
)
from .gate import Gate, create_relay
from .lifecycle import admit_check, admit_entry, admit_exit
from .models import (
    AdmissionEvent,
    CheckResult,
    CodeDefinition,
    DecodeResult,
    DecodeStatus,
    EntryResult,
    ExitResult,
    Operation,
    Outcome,
    RejectReason,
    RelayEvent,
    ScanResult,
    Ticket,
    TicketStatus,
)
from .resolver import find_overlaps, resolve
from .scanner import ScanDecoder
from .store import EventSink, MemoryEventSink, MemoryTicketStore, TicketStore
from .terminal import Terminal

try:
    __version__ = version("pyticketgate")
except PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"

__all__ = [
    "AdmissionEvent",
    "CheckResult",
    "CodeDefinition",
    "ConfigError",
    "ConflictError",
    "DecodeResult",
    "DecodeStatus",
    "EntryResult",
    "EventSink",
    "ExitResult",
    "Gate",
    "GateConfig",
    "MemoryEventSink",
    "MemoryTicketStore",
    "NetworkError",
    "Operation",
    "Outcome",
    "RecordError",
    "RejectReason",
    "RelayConfig",
    "RelayError",
    "RelayEvent",
    "ScanDecoder",
    "ScanResult",
    "ScannerConfig",
    "StoreError",
    "Terminal",
    "Ticket",
    "TicketGateError",
    "TicketStatus",
    "TicketStore",
    "ValidationError",
    "__version__",
    "admit_check",
    "admit_entry",
    "admit_exit",
    "create_relay",
    "find_overlaps",
    "resolve",
]
