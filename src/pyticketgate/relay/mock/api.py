"""Simulated relay for kiosks without door hardware."""

from __future__ import annotations

import asyncio
import logging

from ..base import BaseRelay

_LOGGER = logging.getLogger(__name__)

SIMULATED_DELAY_S = 0.1


class Relay(BaseRelay):
    """Relay that only pretends to open the door."""

    async def _actuate(self, terminal_id: str, duration_ms: int) -> None:
        _LOGGER.info("[MOCK] Opening door for terminal %s (%s ms)", terminal_id, duration_ms)
        await asyncio.sleep(SIMULATED_DELAY_S)
