"""HTTP relay server implementation.

Talks to a small relay server (USB relay board host, ESP32, Raspberry Pi)
that exposes ``POST /open-door``.
"""

from __future__ import annotations

from ..base import BaseRelay
from .const import DEFAULT_HEADERS, OPEN_DOOR_ENDPOINT


class Relay(BaseRelay):
    """Relay driven through an HTTP endpoint."""

    async def _actuate(self, terminal_id: str, duration_ms: int) -> None:
        payload = {"terminalId": terminal_id, "duration": duration_ms}
        await self._request(
            "POST",
            OPEN_DOOR_ENDPOINT,
            json=payload,
            headers=DEFAULT_HEADERS,
        )
