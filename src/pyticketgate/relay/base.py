"""Relay base class and shared behavior."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import aiohttp

from ..exceptions import NetworkError, RelayError, ValidationError
from ..models import RelayEvent
from ..util import utc_now
from .loader import RelayManifest

_LOGGER = logging.getLogger(__name__)
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=2)
DEFAULT_DURATION_MS = 5000


class BaseRelay(ABC):
    """Base class for door relay implementations.

    :meth:`open_door` never raises for actuation failures; it reports them in
    the returned :class:`~pyticketgate.models.RelayEvent`.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None,
        manifest: RelayManifest,
        *,
        endpoint: str | None = None,
        duration_ms: int = DEFAULT_DURATION_MS,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
    ) -> None:
        if manifest.requires_endpoint:
            if session is None:
                raise ValidationError("Session is required.")
            if endpoint is None:
                raise ValidationError(f"endpoint is required for relay {manifest.id}.")
        if duration_ms <= 0:
            raise ValidationError("duration_ms must be positive.")
        self._session = session
        self._manifest = manifest
        self._endpoint = self._normalize_endpoint(endpoint)
        self._duration_ms = duration_ms
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)

    @property
    def relay_id(self) -> str:
        return self._manifest.id

    @property
    def relay_name(self) -> str:
        return self._manifest.name

    @property
    def simulated(self) -> bool:
        return self._manifest.simulated

    @property
    def duration_ms(self) -> int:
        return self._duration_ms

    async def open_door(
        self,
        terminal_id: str,
        duration_ms: int | None = None,
        *,
        triggered_by: str = "system",
        now: datetime | None = None,
    ) -> RelayEvent:
        """Attempt to open the door of ``terminal_id`` and report the outcome."""
        if not isinstance(terminal_id, str) or not terminal_id:
            raise ValidationError("terminal_id must be a non-empty string.")
        duration = duration_ms if duration_ms is not None else self._duration_ms
        if duration <= 0:
            raise ValidationError("duration_ms must be positive.")
        _LOGGER.debug("Relay %s opening door for %s", self.relay_id, terminal_id)
        success = True
        try:
            await self._actuate(terminal_id, duration)
        except (NetworkError, RelayError) as exc:
            _LOGGER.warning(
                "Relay %s failed to open door for %s: %s", self.relay_id, terminal_id, exc
            )
            success = False
        else:
            _LOGGER.debug("Relay %s opened door for %s", self.relay_id, terminal_id)
        return RelayEvent(
            terminal_id=terminal_id,
            timestamp=now or utc_now(),
            duration_ms=duration,
            success=success,
            mock=self.simulated,
            triggered_by=triggered_by,
        )

    def _build_url(self, path: str) -> str:
        if not isinstance(path, str) or not path:
            raise ValidationError("Path must be a non-empty string.")
        if path.startswith("http://") or path.startswith("https://"):
            raise ValidationError("Use relative paths when building relay requests.")
        if self._endpoint is None:
            raise ValidationError("endpoint is required to build relay requests.")
        normalized_path = path if path.startswith("/") else f"/{path}"
        return f"{self._endpoint}{normalized_path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> None:
        if self._session is None:
            raise ValidationError("Session is required.")
        url = self._build_url(path)
        attempts = self._retry_count + 1
        for attempt in range(attempts):
            try:
                async with self._session.request(
                    method,
                    url,
                    timeout=self._timeout,
                    **kwargs,
                ) as response:
                    self._raise_for_status(response)
                    return
            except (aiohttp.ClientError, TimeoutError) as exc:
                if attempt >= attempts - 1:
                    raise NetworkError("Relay request failed.") from exc
                _LOGGER.debug("Relay %s retrying request attempt=%s", self.relay_id, attempt + 2)

    def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        if 200 <= response.status < 300:
            return
        raise RelayError(f"Relay request failed with status {response.status}.")

    def _normalize_endpoint(self, endpoint: str | None) -> str | None:
        if endpoint is None:
            return None
        if not isinstance(endpoint, str) or not endpoint.strip():
            raise ValidationError("endpoint must be a non-empty string.")
        return endpoint.strip().rstrip("/")

    @abstractmethod
    async def _actuate(self, terminal_id: str, duration_ms: int) -> None:
        """Drive the relay; raise NetworkError or RelayError on failure."""
