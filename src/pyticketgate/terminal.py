"""Kiosk terminal binding a scan decoder to one gate operation."""

from __future__ import annotations

import logging
from datetime import datetime

from .config import ScannerConfig
from .exceptions import ValidationError
from .gate import Gate
from .models import (
    CheckResult,
    DecodeStatus,
    EntryResult,
    ExitResult,
    Operation,
    Outcome,
    RejectReason,
    ScanResult,
)
from .scanner import ScanDecoder
from .util import format_minutes_with_unit

_LOGGER = logging.getLogger(__name__)

_REJECT_MESSAGES = {
    RejectReason.INVALID_FORMAT: "Invalid code format",
    RejectReason.DEBOUNCED: "Code already scanned",
}

_OUTCOME_MESSAGES = {
    Outcome.UNKNOWN_CODE: "Unknown ticket type",
    Outcome.NOT_FOUND: "Ticket not found",
    Outcome.EXPIRED: "Ticket has expired",
    Outcome.ALREADY_INSIDE: "Already inside!",
    Outcome.NOT_INSIDE: "You are not inside",
    Outcome.TIME_EXHAUSTED: "Time has been used up",
}


class Terminal:
    """One kiosk: a reader, an operation and a terminal id.

    Key events go in through :meth:`feed`; a :class:`ScanResult` comes out once
    a code is decoded (and admitted) or rejected.
    """

    def __init__(
        self,
        gate: Gate,
        operation: Operation,
        terminal_id: str,
        *,
        scanner: ScannerConfig | None = None,
    ) -> None:
        if not isinstance(terminal_id, str) or not terminal_id:
            raise ValidationError("terminal_id must be a non-empty string.")
        self._gate = gate
        self._operation = operation
        self._terminal_id = terminal_id
        self._decoder = ScanDecoder(scanner or gate.config.scanner)

    @property
    def operation(self) -> Operation:
        return self._operation

    @property
    def terminal_id(self) -> str:
        return self._terminal_id

    @property
    def decoder(self) -> ScanDecoder:
        return self._decoder

    def expire(self, now_ms: int) -> bool:
        return self._decoder.expire(now_ms)

    async def feed(
        self,
        key: str,
        timestamp_ms: int,
        *,
        now: datetime | None = None,
    ) -> ScanResult | None:
        decoded = self._decoder.feed(key, timestamp_ms)
        if decoded.status is DecodeStatus.PENDING:
            return None
        if decoded.status is DecodeStatus.REJECTED:
            return ScanResult(
                success=False,
                message=_REJECT_MESSAGES[decoded.reason],
                code=decoded.raw,
                reason=decoded.reason,
            )
        return await self.submit(decoded.code, now=now)

    async def submit(self, code: str, *, now: datetime | None = None) -> ScanResult:
        """Run the terminal's operation for an already decoded code."""
        _LOGGER.debug("Terminal %s scanned %s", self._terminal_id, code)
        if self._operation is Operation.ENTRY:
            entry = await self._gate.admit_entry(code, terminal_id=self._terminal_id, now=now)
            return self._entry_result(code, entry)
        if self._operation is Operation.CHECK:
            check = await self._gate.admit_check(code, terminal_id=self._terminal_id, now=now)
            return self._check_result(code, check)
        exit_result = await self._gate.admit_exit(code, terminal_id=self._terminal_id, now=now)
        return self._exit_result(code, exit_result)

    def _failure(self, code: str, outcome: Outcome) -> ScanResult:
        return ScanResult(
            success=False,
            message=_OUTCOME_MESSAGES[outcome],
            code=code,
            outcome=outcome,
        )

    def _entry_result(self, code: str, result: EntryResult) -> ScanResult:
        if not result.success:
            return self._failure(code, result.outcome)
        returning = result.ticket is not None and result.ticket.scan_count > 1
        return ScanResult(
            success=True,
            message="Welcome back!" if returning else "Welcome!",
            code=code,
            outcome=result.outcome,
            ticket=result.ticket,
            remaining_minutes=result.remaining_minutes,
            should_open_door=result.open_door,
        )

    def _check_result(self, code: str, result: CheckResult) -> ScanResult:
        if not result.success:
            return self._failure(code, result.outcome)
        if result.overstay_minutes:
            message = f"Over time by {format_minutes_with_unit(result.overstay_minutes)}"
        else:
            message = f"Time left: {format_minutes_with_unit(result.remaining_minutes or 0)}"
        return ScanResult(
            success=True,
            message=message,
            code=code,
            outcome=result.outcome,
            ticket=result.ticket,
            remaining_minutes=result.remaining_minutes,
            overstay_minutes=result.overstay_minutes,
        )

    def _exit_result(self, code: str, result: ExitResult) -> ScanResult:
        if not result.success:
            return self._failure(code, result.outcome)
        if result.overstay_minutes:
            message = (
                f"Over time by {format_minutes_with_unit(result.overstay_minutes)}, "
                f"please pay {result.overstay_charge}"
            )
        else:
            message = "Thank you for your visit!"
        return ScanResult(
            success=True,
            message=message,
            code=code,
            outcome=result.outcome,
            ticket=result.ticket,
            remaining_minutes=result.remaining_minutes,
            overstay_minutes=result.overstay_minutes,
            overstay_charge=result.overstay_charge,
            should_open_door=result.open_door,
        )
