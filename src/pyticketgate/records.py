"""Mapping between store documents and domain models.

Documents use the camelCase keys written by the admin console. Shapes are
checked against the JSON schemas shipped in ``pyticketgate/schemas`` and
rejected here, before they reach the lifecycle engine.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema

from .exceptions import RecordError, ValidationError
from .models import AdmissionEvent, CodeDefinition, RelayEvent, Ticket, TicketStatus
from .resolver import find_overlaps, parse_selector
from .util import elapsed_minutes, format_utc_timestamp, parse_timestamp, utc_now

_LOGGER = logging.getLogger(__name__)

DEFINITION_SCHEMA = "code_definition.schema.json"
TICKET_SCHEMA = "ticket.schema.json"


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict:
    schema_path = resources.files("pyticketgate") / "schemas" / name
    return json.loads(schema_path.read_text(encoding="utf-8"))


def _validate(data: Any, schema_name: str, what: str) -> None:
    if not isinstance(data, Mapping):
        raise RecordError(f"{what} record must be an object.")
    try:
        jsonschema.validate(instance=dict(data), schema=load_schema(schema_name))
    except jsonschema.ValidationError as exc:
        raise RecordError(f"Invalid {what} record: {exc.message}", detail=exc.message) from exc


def _coerce_timestamp(value: Any, field_name: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise RecordError(f"{field_name} must include timezone information.")
        return value
    if isinstance(value, str):
        try:
            return parse_timestamp(value)
        except ValidationError as exc:
            raise RecordError(f"{field_name} is not a valid timestamp.") from exc
    # Store SDK timestamp objects expose to_datetime().
    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        return _coerce_timestamp(to_datetime(), field_name)
    raise RecordError(f"{field_name} has an unsupported type.")


def definition_from_record(data: Mapping[str, Any], definition_id: str | None = None) -> CodeDefinition:
    _validate(data, DEFINITION_SCHEMA, "code definition")
    record_id = definition_id or data.get("id")
    if not record_id:
        raise RecordError("Code definition record has no id.")
    selector = data["prefix"].strip()
    try:
        parse_selector(selector)
        return CodeDefinition(
            id=str(record_id),
            name=data["name"],
            selector=selector,
            duration_minutes=data["durationMinutes"],
            price=data["price"],
            price_per_extra_minute=data["pricePerExtraMinute"],
            active=data.get("active", True),
            description=data.get("description") or "",
            branch_id=data.get("branchId"),
        )
    except ValidationError as exc:
        raise RecordError(f"Invalid code definition {record_id}: {exc}") from exc


def definition_to_record(definition: CodeDefinition) -> dict[str, Any]:
    return {
        "id": definition.id,
        "name": definition.name,
        "description": definition.description,
        "prefix": definition.selector,
        "branchId": definition.branch_id,
        "durationMinutes": definition.duration_minutes,
        "price": definition.price,
        "pricePerExtraMinute": definition.price_per_extra_minute,
        "active": definition.active,
    }


def load_definitions(source: Any) -> list[CodeDefinition]:
    """Load definitions from a JSON file path, a seed document or a list.

    Accepted shapes: ``{"code_ranges": {id: record}}``, ``{id: record}`` and
    ``[record, ...]`` where each record carries its ``id``. Order is preserved
    because it decides precedence between overlapping selectors.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            source = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RecordError(f"Definitions file is not valid JSON: {path}") from exc
    if isinstance(source, Mapping) and "code_ranges" in source:
        source = source["code_ranges"]
    definitions: list[CodeDefinition] = []
    if isinstance(source, Mapping):
        for definition_id, record in source.items():
            definitions.append(definition_from_record(record, str(definition_id)))
    elif isinstance(source, list):
        definitions.extend(definition_from_record(record) for record in source)
    else:
        raise RecordError("Definitions must be a list or an object.")
    for first, second in find_overlaps(definitions):
        _LOGGER.warning(
            "Code definitions %s (%s) and %s (%s) overlap; %s takes precedence",
            first.id,
            first.selector,
            second.id,
            second.selector,
            first.id,
        )
    return definitions


def ticket_from_record(
    data: Mapping[str, Any],
    code: str | None = None,
    *,
    now: datetime | None = None,
) -> Ticket:
    """Build a ticket from a stored document.

    Documents written before ``remainingMinutes`` existed are migrated: unused
    tickets keep their full allowance, tickets already admitted get what is
    left of it since the first scan.
    """
    _validate(data, TICKET_SCHEMA, "ticket")
    ticket_code = code or data.get("ean")
    if not ticket_code:
        raise RecordError("Ticket record has no code.")
    status = TicketStatus(data["status"])
    first_scan = _coerce_timestamp(data.get("firstScan"), "firstScan")
    last_scan = _coerce_timestamp(data.get("lastScan"), "lastScan")
    allowed = data["allowedMinutes"]
    remaining = data.get("remainingMinutes")
    if remaining is None:
        remaining = allowed
        if status in (TicketStatus.INSIDE, TicketStatus.LEFT) and first_scan is not None:
            elapsed = elapsed_minutes(first_scan, now or utc_now())
            remaining = max(0, allowed - elapsed)
        _LOGGER.debug("Migrated ticket %s remainingMinutes=%s", ticket_code, remaining)
    return Ticket(
        code=str(ticket_code),
        definition_id=data["rangeId"],
        status=status,
        first_scan=first_scan,
        last_scan=last_scan,
        allowed_minutes=allowed,
        remaining_minutes=remaining,
        scan_count=data.get("scanCount", 0),
        branch_id=data.get("branchId"),
    )


def _format_optional(value: datetime | None) -> str | None:
    return format_utc_timestamp(value) if value is not None else None


def ticket_to_record(ticket: Ticket) -> dict[str, Any]:
    return {
        "ean": ticket.code,
        "rangeId": ticket.definition_id,
        "branchId": ticket.branch_id,
        "status": ticket.status.value,
        "firstScan": _format_optional(ticket.first_scan),
        "lastScan": _format_optional(ticket.last_scan),
        "allowedMinutes": ticket.allowed_minutes,
        "remainingMinutes": ticket.remaining_minutes,
        "scanCount": ticket.scan_count,
    }


def event_to_record(event: AdmissionEvent) -> dict[str, Any]:
    return {
        "ean": event.code,
        "type": event.operation.value,
        "terminalId": event.terminal_id,
        "timestamp": format_utc_timestamp(event.timestamp),
        "remainingMinutes": event.remaining_minutes,
        "overstayMinutes": event.overstay_minutes,
    }


def relay_event_to_record(event: RelayEvent) -> dict[str, Any]:
    return {
        "timestamp": format_utc_timestamp(event.timestamp),
        "triggeredBy": event.triggered_by,
        "terminal": event.terminal_id,
        "duration": event.duration_ms / 1000,
        "success": event.success,
        "mock": event.mock,
    }
