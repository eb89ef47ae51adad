from dataclasses import replace
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from pyticketgate.exceptions import ValidationError
from pyticketgate.lifecycle import (
    admit_check,
    admit_entry,
    admit_exit,
    decide_check,
    decide_entry,
    decide_exit,
)
from pyticketgate.models import CodeDefinition, Operation, Outcome, Ticket, TicketStatus

CODE = "03041000"
OPENED = datetime(2026, 10, 18, 10, 0, tzinfo=UTC)

DEFINITION = CodeDefinition(
    id="basic",
    name="Basic entry",
    selector=CODE,
    duration_minutes=60,
    price=100,
    price_per_extra_minute=5,
)


def _inside(minutes_ago: int = 0, **changes) -> Ticket:
    first_scan = OPENED - timedelta(minutes=minutes_ago)
    ticket = Ticket(
        code=CODE,
        definition_id="basic",
        status=TicketStatus.INSIDE,
        first_scan=first_scan,
        last_scan=first_scan,
        allowed_minutes=60,
        remaining_minutes=60,
        scan_count=1,
    )
    return replace(ticket, **changes)


def test_entry_issues_new_ticket() -> None:
    result = decide_entry(CODE, None, DEFINITION, OPENED, terminal_id="entry-1", tz=UTC)
    assert result.outcome is Outcome.SUCCESS
    assert result.open_door is True
    ticket = result.ticket
    assert ticket.status is TicketStatus.INSIDE
    assert ticket.first_scan == ticket.last_scan == OPENED
    assert ticket.allowed_minutes == ticket.remaining_minutes == 60
    assert ticket.scan_count == 1
    assert result.event.operation is Operation.ENTRY
    assert result.event.terminal_id == "entry-1"
    assert result.event.remaining_minutes == 60
    assert result.event.overstay_minutes == 0


def test_entry_unknown_code() -> None:
    result = decide_entry(CODE, None, None, OPENED, terminal_id="entry-1", tz=UTC)
    assert result.outcome is Outcome.UNKNOWN_CODE
    assert result.ticket is None
    assert result.event is None
    assert result.open_door is False


def test_entry_already_inside_leaves_ticket_untouched() -> None:
    ticket = _inside(minutes_ago=5)
    result = decide_entry(CODE, ticket, DEFINITION, OPENED, terminal_id="entry-1", tz=UTC)
    assert result.outcome is Outcome.ALREADY_INSIDE
    assert result.ticket == ticket
    assert result.event is None


def test_entry_time_exhausted() -> None:
    ticket = _inside(minutes_ago=90, status=TicketStatus.LEFT, remaining_minutes=0)
    result = decide_entry(CODE, ticket, DEFINITION, OPENED, terminal_id="entry-1", tz=UTC)
    assert result.outcome is Outcome.TIME_EXHAUSTED
    assert result.event is None


def test_reentry_keeps_first_scan_and_balance() -> None:
    ticket = _inside(minutes_ago=55, status=TicketStatus.LEFT, remaining_minutes=5)
    result = decide_entry(CODE, ticket, DEFINITION, OPENED, terminal_id="entry-1", tz=UTC)
    assert result.outcome is Outcome.SUCCESS
    assert result.ticket.status is TicketStatus.INSIDE
    assert result.ticket.first_scan == ticket.first_scan
    assert result.ticket.last_scan == OPENED
    assert result.ticket.remaining_minutes == 5
    assert result.ticket.scan_count == 2
    assert result.event.remaining_minutes == 5


def test_entry_of_provisioned_ticket_starts_clock() -> None:
    ticket = Ticket(
        code=CODE,
        definition_id="basic",
        status=TicketStatus.ACTIVE,
        first_scan=None,
        last_scan=None,
        allowed_minutes=60,
        remaining_minutes=60,
    )
    result = decide_entry(CODE, ticket, None, OPENED, terminal_id="entry-1", tz=UTC)
    assert result.outcome is Outcome.SUCCESS
    assert result.ticket.first_scan == OPENED
    assert result.ticket.status is TicketStatus.INSIDE
    assert result.ticket.scan_count == 1


@pytest.mark.parametrize(
    "status", [TicketStatus.INSIDE, TicketStatus.LEFT, TicketStatus.ACTIVE]
)
def test_prior_day_ticket_is_expired_everywhere(status: TicketStatus) -> None:
    ticket = _inside(minutes_ago=24 * 60, status=status)
    entry = decide_entry(CODE, ticket, DEFINITION, OPENED, terminal_id="e", tz=UTC)
    check = decide_check(ticket, OPENED, terminal_id="c", tz=UTC)
    exit_result = decide_exit(ticket, DEFINITION, OPENED, terminal_id="x", tz=UTC)
    assert entry.outcome is Outcome.EXPIRED
    assert check.outcome is Outcome.EXPIRED
    assert exit_result.outcome is Outcome.EXPIRED
    assert entry.ticket == check.ticket == exit_result.ticket == ticket


def test_stored_expired_status_is_expired() -> None:
    ticket = _inside(status=TicketStatus.EXPIRED)
    assert decide_check(ticket, OPENED, terminal_id="c", tz=UTC).outcome is Outcome.EXPIRED


def test_same_day_uses_local_calendar() -> None:
    # 23:30 UTC on the 17th is already the 18th in Prague.
    prague = ZoneInfo("Europe/Prague")
    ticket = _inside(first_scan=datetime(2026, 10, 17, 23, 30, tzinfo=UTC))
    result = decide_check(ticket, OPENED, terminal_id="c", tz=prague)
    assert result.outcome is Outcome.SUCCESS
    result = decide_check(ticket, OPENED, terminal_id="c", tz=UTC)
    assert result.outcome is Outcome.EXPIRED


def test_check_reports_remaining_without_committing_balance() -> None:
    ticket = _inside(minutes_ago=20)
    result = decide_check(ticket, OPENED, terminal_id="check-1", tz=UTC)
    assert result.outcome is Outcome.SUCCESS
    assert result.remaining_minutes == 40
    assert result.overstay_minutes == 0
    assert result.ticket.remaining_minutes == 60
    assert result.ticket.scan_count == 2
    assert result.ticket.last_scan == OPENED
    assert result.open_door is False
    assert result.event.operation is Operation.CHECK


def test_check_over_time_is_informational() -> None:
    result = decide_check(_inside(minutes_ago=75), OPENED, terminal_id="check-1", tz=UTC)
    assert result.outcome is Outcome.SUCCESS
    assert result.remaining_minutes == 0
    assert result.overstay_minutes == 15
    assert result.event.overstay_minutes == 15


def test_check_floors_partial_minutes() -> None:
    ticket = _inside(first_scan=OPENED - timedelta(minutes=20, seconds=59))
    result = decide_check(ticket, OPENED, terminal_id="check-1", tz=UTC)
    assert result.remaining_minutes == 40


def test_check_and_exit_require_inside() -> None:
    ticket = _inside(status=TicketStatus.LEFT)
    check = decide_check(ticket, OPENED, terminal_id="c", tz=UTC)
    exit_result = decide_exit(ticket, DEFINITION, OPENED, terminal_id="x", tz=UTC)
    assert check.outcome is Outcome.NOT_INSIDE
    assert exit_result.outcome is Outcome.NOT_INSIDE


def test_check_and_exit_missing_ticket() -> None:
    assert decide_check(None, OPENED, terminal_id="c").outcome is Outcome.NOT_FOUND
    assert decide_exit(None, DEFINITION, OPENED, terminal_id="x").outcome is Outcome.NOT_FOUND


def test_exit_at_exact_expiry_has_no_overstay() -> None:
    result = decide_exit(_inside(minutes_ago=60), DEFINITION, OPENED, terminal_id="exit-1", tz=UTC)
    assert result.outcome is Outcome.SUCCESS
    assert result.remaining_minutes == 0
    assert result.overstay_minutes == 0
    assert result.overstay_charge == 0
    assert result.ticket.status is TicketStatus.LEFT
    assert result.open_door is True


def test_exit_with_time_left_persists_balance() -> None:
    result = decide_exit(_inside(minutes_ago=45), DEFINITION, OPENED, terminal_id="exit-1", tz=UTC)
    assert result.ticket.remaining_minutes == 15
    assert result.event.remaining_minutes == 15
    assert result.ticket.scan_count == 2


def test_exit_overstay_charges_and_keeps_door_closed() -> None:
    result = decide_exit(_inside(minutes_ago=70), DEFINITION, OPENED, terminal_id="exit-1", tz=UTC)
    assert result.outcome is Outcome.SUCCESS
    assert result.overstay_minutes == 10
    assert result.overstay_charge == 50
    assert result.remaining_minutes == 0
    assert result.ticket.status is TicketStatus.LEFT
    assert result.ticket.remaining_minutes == 0
    assert result.event.overstay_minutes == 10
    assert result.open_door is False


def test_exit_rate_comes_from_ticket_class() -> None:
    premium = replace(DEFINITION, id="premium", price_per_extra_minute=12)
    result = decide_exit(_inside(minutes_ago=70), premium, OPENED, terminal_id="exit-1", tz=UTC)
    assert result.overstay_charge == 120


def test_exit_without_definition_is_unknown_code() -> None:
    result = decide_exit(_inside(minutes_ago=10), None, OPENED, terminal_id="exit-1", tz=UTC)
    assert result.outcome is Outcome.UNKNOWN_CODE
    assert result.event is None


def test_naive_now_is_rejected() -> None:
    with pytest.raises(ValidationError):
        decide_check(_inside(), datetime(2026, 10, 18, 10, 0), terminal_id="c")


def test_lookup_wrappers_follow_reference_example() -> None:
    tickets: dict[str, Ticket] = {}
    definitions = {DEFINITION.id: DEFINITION}

    entry = admit_entry(
        CODE,
        tickets.get,
        lambda code: DEFINITION if code == CODE else None,
        OPENED,
        terminal_id="entry-1",
        tz=UTC,
    )
    assert entry.remaining_minutes == 60
    tickets[CODE] = entry.ticket

    later = OPENED + timedelta(minutes=30)
    check = admit_check(CODE, tickets.get, later, terminal_id="check-1", tz=UTC)
    assert check.remaining_minutes == 30

    later = OPENED + timedelta(minutes=70)
    exit_result = admit_exit(
        CODE, tickets.get, definitions.get, later, terminal_id="exit-1", tz=UTC
    )
    assert exit_result.overstay_minutes == 10
    assert exit_result.overstay_charge == 50
    assert exit_result.ticket.status is TicketStatus.LEFT
    assert exit_result.ticket.remaining_minutes == 0
