"""Ticket admission state machine.

Every decision is a pure function of ``(ticket, definition, now)``: it never
mutates its inputs and returns the updated ticket and the event to record.
Callers persist the result atomically and may re-run the decision against a
freshly read ticket when a concurrent write is detected.

States::

    ACTIVE --ENTRY--> INSIDE --EXIT--> LEFT --ENTRY (time left)--> INSIDE

A ticket is valid only on the local calendar day of its first admission; on
any other day it is treated as EXPIRED whatever its stored status.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, tzinfo

from .models import (
    AdmissionEvent,
    CheckResult,
    CodeDefinition,
    EntryResult,
    ExitResult,
    Operation,
    Outcome,
    Ticket,
    TicketStatus,
)
from .util import ensure_aware, is_same_day, remaining_minutes

TicketLookup = Callable[[str], Ticket | None]
CodeLookup = Callable[[str], CodeDefinition | None]
DefinitionLookup = Callable[[str], CodeDefinition | None]


def is_expired(ticket: Ticket, now: datetime, tz: tzinfo | None = None) -> bool:
    if ticket.status is TicketStatus.EXPIRED:
        return True
    return not is_same_day(ticket.first_scan, now, tz)


def current_remaining(ticket: Ticket, now: datetime) -> int:
    """Minutes left for a ticket inside, negative when over time."""
    since = ticket.first_scan or ticket.last_scan or now
    return remaining_minutes(ticket.allowed_minutes, since, now)


def issue_ticket(code: str, definition: CodeDefinition, now: datetime) -> Ticket:
    return Ticket(
        code=code,
        definition_id=definition.id,
        status=TicketStatus.INSIDE,
        first_scan=now,
        last_scan=now,
        allowed_minutes=definition.duration_minutes,
        remaining_minutes=definition.duration_minutes,
        scan_count=1,
        branch_id=definition.branch_id,
    )


def _event(
    ticket: Ticket,
    operation: Operation,
    terminal_id: str,
    now: datetime,
    remaining: int,
    overstay: int = 0,
) -> AdmissionEvent:
    return AdmissionEvent(
        code=ticket.code,
        operation=operation,
        terminal_id=terminal_id,
        timestamp=now,
        remaining_minutes=remaining,
        overstay_minutes=overstay,
    )


def decide_entry(
    code: str,
    ticket: Ticket | None,
    definition: CodeDefinition | None,
    now: datetime,
    *,
    terminal_id: str,
    tz: tzinfo | None = None,
) -> EntryResult:
    """Decide an ENTRY scan.

    ``definition`` is only consulted when no ticket exists yet for ``code``.
    """
    ensure_aware(now, "now")
    if ticket is None:
        if definition is None:
            return EntryResult(outcome=Outcome.UNKNOWN_CODE)
        issued = issue_ticket(code, definition, now)
        return EntryResult(
            outcome=Outcome.SUCCESS,
            ticket=issued,
            event=_event(issued, Operation.ENTRY, terminal_id, now, issued.remaining_minutes),
            remaining_minutes=issued.remaining_minutes,
        )

    if is_expired(ticket, now, tz):
        return EntryResult(outcome=Outcome.EXPIRED, ticket=ticket)
    if ticket.status is TicketStatus.INSIDE:
        return EntryResult(outcome=Outcome.ALREADY_INSIDE, ticket=ticket)

    if ticket.status is TicketStatus.ACTIVE:
        # Pre-provisioned ticket: its first admission starts the clock.
        updated = replace(
            ticket,
            status=TicketStatus.INSIDE,
            first_scan=ticket.first_scan or now,
            last_scan=now,
            remaining_minutes=ticket.allowed_minutes,
            scan_count=ticket.scan_count + 1,
        )
    else:
        if ticket.remaining_minutes <= 0:
            return EntryResult(outcome=Outcome.TIME_EXHAUSTED, ticket=ticket, remaining_minutes=0)
        updated = replace(
            ticket,
            status=TicketStatus.INSIDE,
            last_scan=now,
            scan_count=ticket.scan_count + 1,
        )
    return EntryResult(
        outcome=Outcome.SUCCESS,
        ticket=updated,
        event=_event(updated, Operation.ENTRY, terminal_id, now, updated.remaining_minutes),
        remaining_minutes=updated.remaining_minutes,
    )


def decide_check(
    ticket: Ticket | None,
    now: datetime,
    *,
    terminal_id: str,
    tz: tzinfo | None = None,
) -> CheckResult:
    """Decide a CHECK scan. The stored balance is left untouched."""
    ensure_aware(now, "now")
    if ticket is None:
        return CheckResult(outcome=Outcome.NOT_FOUND)
    if is_expired(ticket, now, tz):
        return CheckResult(outcome=Outcome.EXPIRED, ticket=ticket)
    if ticket.status is not TicketStatus.INSIDE:
        return CheckResult(outcome=Outcome.NOT_INSIDE, ticket=ticket)

    remaining = current_remaining(ticket, now)
    left, overstay = max(remaining, 0), max(-remaining, 0)
    updated = replace(ticket, last_scan=now, scan_count=ticket.scan_count + 1)
    return CheckResult(
        outcome=Outcome.SUCCESS,
        ticket=updated,
        event=_event(updated, Operation.CHECK, terminal_id, now, left, overstay),
        remaining_minutes=left,
        overstay_minutes=overstay,
    )


def decide_exit(
    ticket: Ticket | None,
    definition: CodeDefinition | None,
    now: datetime,
    *,
    terminal_id: str,
    tz: tzinfo | None = None,
) -> ExitResult:
    """Decide an EXIT scan.

    ``definition`` is the ticket's own class and supplies the overstay rate.
    An overstay is a successful exit that keeps the door closed until the
    charge is collected.
    """
    ensure_aware(now, "now")
    if ticket is None:
        return ExitResult(outcome=Outcome.NOT_FOUND)
    if is_expired(ticket, now, tz):
        return ExitResult(outcome=Outcome.EXPIRED, ticket=ticket)
    if ticket.status is not TicketStatus.INSIDE:
        return ExitResult(outcome=Outcome.NOT_INSIDE, ticket=ticket)
    if definition is None:
        return ExitResult(outcome=Outcome.UNKNOWN_CODE, ticket=ticket)

    remaining = current_remaining(ticket, now)
    left, overstay = max(remaining, 0), max(-remaining, 0)
    updated = replace(
        ticket,
        status=TicketStatus.LEFT,
        last_scan=now,
        remaining_minutes=left,
        scan_count=ticket.scan_count + 1,
    )
    return ExitResult(
        outcome=Outcome.SUCCESS,
        ticket=updated,
        event=_event(updated, Operation.EXIT, terminal_id, now, left, overstay),
        remaining_minutes=left,
        overstay_minutes=overstay,
        overstay_charge=overstay * definition.price_per_extra_minute,
    )


def admit_entry(
    code: str,
    ticket_lookup: TicketLookup,
    code_lookup: CodeLookup,
    now: datetime,
    *,
    terminal_id: str,
    tz: tzinfo | None = None,
) -> EntryResult:
    ticket = ticket_lookup(code)
    definition = code_lookup(code) if ticket is None else None
    return decide_entry(code, ticket, definition, now, terminal_id=terminal_id, tz=tz)


def admit_check(
    code: str,
    ticket_lookup: TicketLookup,
    now: datetime,
    *,
    terminal_id: str,
    tz: tzinfo | None = None,
) -> CheckResult:
    return decide_check(ticket_lookup(code), now, terminal_id=terminal_id, tz=tz)


def admit_exit(
    code: str,
    ticket_lookup: TicketLookup,
    definition_lookup: DefinitionLookup,
    now: datetime,
    *,
    terminal_id: str,
    tz: tzinfo | None = None,
) -> ExitResult:
    ticket = ticket_lookup(code)
    definition = definition_lookup(ticket.definition_id) if ticket is not None else None
    return decide_exit(ticket, definition, now, terminal_id=terminal_id, tz=tz)
