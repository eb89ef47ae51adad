"""Shared utilities for code validation and ticket time accounting."""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta, tzinfo

from .exceptions import ValidationError

_DIGITS_RE = re.compile(r"^\d+$")
_MINUTE = timedelta(minutes=1)

EAN_LENGTHS = (7, 8, 12, 13)


def is_numeric(code: str) -> bool:
    return isinstance(code, str) and bool(_DIGITS_RE.match(code))


def normalize_code(code: str, *, full_length: int = 8) -> str:
    """Restore a leading zero dropped by the reader.

    Codes exactly one digit shorter than ``full_length`` are left-padded with a
    single zero; every other code is returned unchanged.
    """
    if not isinstance(code, str):
        raise ValidationError("Code must be a string.")
    code = code.strip()
    if len(code) == full_length - 1:
        return f"0{code}"
    return code


def ean_checksum_ok(code: str) -> bool:
    """Verify the GS1 check digit of an EAN-8/UPC-A/EAN-13 code."""
    if not is_numeric(code) or len(code) < 2:
        return False
    digits = [int(ch) for ch in code]
    body, check = digits[:-1], digits[-1]
    total = 0
    # Weights alternate 3,1,... starting from the digit next to the check digit.
    for index, digit in enumerate(reversed(body)):
        total += digit * (3 if index % 2 == 0 else 1)
    return (10 - total % 10) % 10 == check


def is_valid_ean(code: str, *, verify_checksum: bool = False) -> bool:
    if not is_numeric(code):
        return False
    if len(code) not in EAN_LENGTHS:
        return False
    if verify_checksum and len(code) != 7:
        return ean_checksum_ok(code)
    return True


def ensure_aware(value: datetime, name: str = "timestamp") -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime.")
    if value.tzinfo is None:
        raise ValidationError(f"{name} must include timezone information.")
    return value


def utc_now() -> datetime:
    return datetime.now(UTC)


def local_date(value: datetime, tz: tzinfo | None = None) -> date:
    ensure_aware(value)
    # astimezone(None) converts to the host's local zone.
    return value.astimezone(tz).date()


def is_same_day(first_scan: datetime | None, now: datetime, tz: tzinfo | None = None) -> bool:
    """Return True when a ticket first scanned at ``first_scan`` is valid at ``now``.

    Tickets that were never scanned are not yet bound to a day.
    """
    if first_scan is None:
        return True
    return local_date(first_scan, tz) == local_date(now, tz)


def elapsed_minutes(since: datetime, now: datetime) -> int:
    """Whole minutes elapsed between two instants, floored and never negative."""
    ensure_aware(since, "since")
    ensure_aware(now, "now")
    return max(0, (now - since) // _MINUTE)


def remaining_minutes(allowed: int, since: datetime, now: datetime) -> int:
    """Minutes left of ``allowed``; negative when over time."""
    return allowed - elapsed_minutes(since, now)


def format_minutes(minutes: int) -> str:
    if minutes < 0:
        return "0:00"
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}:{mins:02d}"
    return f"{mins}"


def format_minutes_with_unit(minutes: int) -> str:
    hours, mins = divmod(max(0, minutes), 60)
    if hours > 0:
        if mins > 0:
            return f"{hours}h {mins}min"
        return f"{hours}h"
    return f"{mins} min"


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValidationError("Timestamp must be a non-empty string.")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError("Timestamp is not a valid ISO 8601 value.") from exc
    if parsed.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    return parsed.astimezone(UTC)


def format_utc_timestamp(value: datetime) -> str:
    ensure_aware(value)
    normalized = value.astimezone(UTC).replace(microsecond=0)
    return normalized.isoformat().replace("+00:00", "Z")
