"""Manual live check for a door relay.

Run from the repository root with:
  PYTHONPATH=src RELAY_ENDPOINT=http://192.168.1.50:8080 \
  python scripts/relay_live_check.py --terminal entry-1

Without an endpoint the simulated relay is used.

Optional environment variables:
  RELAY_ENDPOINT
  RELAY_ID
  TERMINAL_ID
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import aiohttp

from pyticketgate.config import RelayConfig
from pyticketgate.exceptions import TicketGateError
from pyticketgate.gate import create_relay
from pyticketgate.relay.loader import list_relays


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Open a door through a relay.")
    parser.add_argument("--relay", dest="relay_id", help=f"Relay id ({', '.join(list_relays())}).")
    parser.add_argument("--endpoint", help="Relay server URL.")
    parser.add_argument("--terminal", dest="terminal_id", help="Terminal id to open.")
    parser.add_argument(
        "--duration-ms",
        type=int,
        default=5000,
        help="How long the door stays open (default: 5000).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=2.0,
        help="Request timeout in seconds (default: 2).",
    )
    parser.add_argument("--retries", type=int, default=0, help="Retries on network errors.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


async def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    relay_id = args.relay_id or os.getenv("RELAY_ID")
    endpoint = args.endpoint or os.getenv("RELAY_ENDPOINT")
    terminal_id = args.terminal_id or os.getenv("TERMINAL_ID") or "entry-1"

    try:
        config = RelayConfig(
            relay_id=relay_id,
            endpoint=endpoint,
            duration_ms=args.duration_ms,
            timeout_s=args.timeout,
            retry_count=args.retries,
        )
        async with aiohttp.ClientSession() as session:
            relay = create_relay(config, session)
            event = await relay.open_door(terminal_id, triggered_by="operator")
    except TicketGateError as exc:
        print(f"Error: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 2

    print(f"Relay: {relay.relay_name} ({relay.relay_id})")
    print(f"Terminal: {event.terminal_id}")
    print(f"Duration: {event.duration_ms} ms")
    print(f"Simulated: {'yes' if event.mock else 'no'}")
    print(f"Result: {'opened' if event.success else 'FAILED'}")
    return 0 if event.success else 1


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
