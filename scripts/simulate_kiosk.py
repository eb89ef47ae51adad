"""Drive entry, check and exit kiosks against an in-memory store.

Each step is ``OPERATION:CODE[@MINUTES]`` where MINUTES is the offset from
the start of the run. The code is typed into the kiosk key by key the way a
keyboard-emulation reader would, followed by Enter.

Run from the repository root with:
  PYTHONPATH=src python scripts/simulate_kiosk.py \
    ENTRY:3041000@0 CHECK:03041000@30 EXIT:03041000@70

Definitions default to a single 60 minute class for 03041000-03041999; use
``--definitions seed.json`` to load a ``code_ranges`` seed file instead.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta

from pyticketgate import Gate, GateConfig, MemoryTicketStore, Operation, RelayConfig, Terminal
from pyticketgate.exceptions import TicketGateError
from pyticketgate.models import CodeDefinition, ScanResult
from pyticketgate.records import load_definitions
from pyticketgate.util import format_utc_timestamp, utc_now

_KEY_INTERVAL_MS = 10
_DEFAULT_DEFINITIONS = [
    CodeDefinition(
        id="basic",
        name="Basic entry",
        selector="03041000-03041999",
        duration_minutes=60,
        price=100,
        price_per_extra_minute=5,
    )
]


@dataclass(frozen=True, slots=True)
class _Step:
    operation: Operation
    code: str
    offset_minutes: int


def _parse_step(value: str) -> _Step:
    operation_name, sep, rest = value.partition(":")
    if not sep:
        raise argparse.ArgumentTypeError(f"Step must look like ENTRY:CODE[@MINUTES]: {value}")
    try:
        operation = Operation(operation_name.strip().upper())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Unknown operation: {operation_name}") from exc
    code, _, offset = rest.partition("@")
    try:
        offset_minutes = int(offset) if offset else 0
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Offset must be whole minutes: {offset}") from exc
    return _Step(operation=operation, code=code.strip(), offset_minutes=offset_minutes)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate kiosk scans.")
    parser.add_argument("steps", nargs="+", type=_parse_step, help="OPERATION:CODE[@MINUTES]")
    parser.add_argument("--definitions", help="Path to a code_ranges seed file.")
    parser.add_argument("--timezone", help="IANA zone used for the same-day rule.")
    parser.add_argument("--relay-endpoint", help="Open real doors through this relay server.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def _format_result(step: _Step, moment: datetime, result: ScanResult | None) -> str:
    prefix = f"{format_utc_timestamp(moment)} {step.operation.value:<5} {step.code}"
    if result is None:
        return f"{prefix} -> (no scan)"
    status = "OK " if result.success else "NO "
    door = " [door]" if result.should_open_door else ""
    return f"{prefix} -> {status}{result.message}{door}"


async def _type_code(
    terminal: Terminal, code: str, clock_ms: int, moment: datetime
) -> ScanResult | None:
    result = None
    for index, key in enumerate([*code, "Enter"]):
        result = await terminal.feed(key, clock_ms + index * _KEY_INTERVAL_MS, now=moment)
    return result


async def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        definitions = (
            load_definitions(args.definitions) if args.definitions else _DEFAULT_DEFINITIONS
        )
        config = GateConfig(
            timezone=args.timezone,
            relay=RelayConfig(endpoint=args.relay_endpoint),
        )
    except TicketGateError as exc:
        print(f"Error: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 2

    start = utc_now()
    store = MemoryTicketStore(definitions)
    async with Gate(store, config=config) as gate:
        terminals = {
            operation: Terminal(gate, operation, f"{operation.value.lower()}-1")
            for operation in Operation
        }
        for step in args.steps:
            moment = start + timedelta(minutes=step.offset_minutes)
            # Reader clock follows the simulated offset.
            clock_ms = step.offset_minutes * 60_000
            try:
                result = await _type_code(terminals[step.operation], step.code, clock_ms, moment)
            except TicketGateError as exc:
                print(f"Error: {exc.__class__.__name__}: {exc}", file=sys.stderr)
                return 1
            print(_format_result(step, moment, result))

    print(f"Events: {len(gate.events.events)} scans, {len(gate.events.relay_events)} door signals")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
