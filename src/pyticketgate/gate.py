"""Gate facade: admission decisions wired to a store, an event sink and a door relay."""

from __future__ import annotations

import asyncio
import importlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

import aiohttp

from .config import GateConfig, RelayConfig
from .exceptions import ConfigError, ConflictError, TicketGateError, ValidationError
from .lifecycle import decide_check, decide_entry, decide_exit
from .models import CheckResult, EntryResult, ExitResult, RelayEvent, Ticket
from .relay.base import BaseRelay
from .relay.loader import RelayManifest, get_manifest, list_relays
from .resolver import resolve
from .store import EventSink, MemoryEventSink, TicketStore
from .util import ensure_aware, is_numeric, normalize_code, utc_now

_LOGGER = logging.getLogger(__name__)

_Result = EntryResult | CheckResult | ExitResult


def _load_relay_data(relay_id: str) -> tuple[RelayManifest, type[BaseRelay]]:
    if not relay_id:
        raise ConfigError("Relay id is required.")
    manifest = get_manifest(relay_id)
    module_name = f"pyticketgate.relay.{relay_id}"
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as exc:
        raise ConfigError("Relay module could not be imported.") from exc
    relay_cls = getattr(module, "Relay", None)
    if relay_cls is None:
        raise ConfigError("Relay module does not export Relay.")
    if not isinstance(relay_cls, type) or not issubclass(relay_cls, BaseRelay):
        raise ConfigError("Relay must inherit from BaseRelay.")
    return manifest, relay_cls


def create_relay(
    config: RelayConfig,
    session: aiohttp.ClientSession | None = None,
) -> BaseRelay:
    """Instantiate the relay selected by ``config``.

    Raises:
        ConfigError: If the relay is unknown or needs an endpoint that is not configured.
    """
    manifest, relay_cls = _load_relay_data(config.resolved_relay_id)
    if manifest.requires_endpoint and not config.endpoint:
        raise ConfigError(f"Relay {manifest.id} requires an endpoint.")
    return relay_cls(
        session,
        manifest,
        endpoint=config.endpoint,
        duration_ms=config.duration_ms,
        timeout=aiohttp.ClientTimeout(total=config.timeout_s),
        retry_count=config.retry_count,
    )


class Gate:
    """Run ENTRY/CHECK/EXIT admissions against a ticket store.

    Each admission reads the ticket, decides, and writes it back with
    compare-and-set; a lost race is re-decided against the fresh record.
    Door signals are sent in the background after the decision is committed
    and never undo it.
    """

    def __init__(
        self,
        store: TicketStore,
        events: EventSink | None = None,
        *,
        config: GateConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        relay: BaseRelay | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._events = events if events is not None else MemoryEventSink()
        self._config = config or GateConfig()
        self._tz = self._config.tzinfo
        self._session = session
        self._owns_session = session is None
        self._relay = relay
        self._clock = clock or utc_now
        self._pending: set[asyncio.Task[RelayEvent | None]] = set()

    async def __aenter__(self) -> Gate:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def config(self) -> GateConfig:
        return self._config

    @property
    def events(self) -> EventSink:
        return self._events

    async def list_relays(self) -> list[str]:
        return await asyncio.to_thread(list_relays)

    def get_relay(self) -> BaseRelay | None:
        """Return the configured relay, or None when door actuation is disabled."""
        if not self._config.relay.enabled:
            return None
        if self._relay is None:
            relay_config = self._config.relay
            session = None
            if get_manifest(relay_config.resolved_relay_id).requires_endpoint:
                session = self._ensure_session()
            self._relay = create_relay(relay_config, session)
        return self._relay

    async def admit_entry(
        self,
        code: str,
        *,
        terminal_id: str,
        now: datetime | None = None,
    ) -> EntryResult:
        code, now = self._prepare(code, now)
        _LOGGER.debug("Gate %s admit_entry started", terminal_id)

        async def decide(ticket: Ticket | None) -> EntryResult:
            definition = None
            if ticket is None:
                definition = resolve(code, await self._store.list_definitions())
            return decide_entry(code, ticket, definition, now, terminal_id=terminal_id, tz=self._tz)

        result = await self._run(code, decide)
        self._finish("admit_entry", terminal_id, result)
        return result

    async def admit_check(
        self,
        code: str,
        *,
        terminal_id: str,
        now: datetime | None = None,
    ) -> CheckResult:
        code, now = self._prepare(code, now)
        _LOGGER.debug("Gate %s admit_check started", terminal_id)

        async def decide(ticket: Ticket | None) -> CheckResult:
            return decide_check(ticket, now, terminal_id=terminal_id, tz=self._tz)

        result = await self._run(code, decide)
        self._finish("admit_check", terminal_id, result)
        return result

    async def admit_exit(
        self,
        code: str,
        *,
        terminal_id: str,
        now: datetime | None = None,
    ) -> ExitResult:
        code, now = self._prepare(code, now)
        _LOGGER.debug("Gate %s admit_exit started", terminal_id)

        async def decide(ticket: Ticket | None) -> ExitResult:
            definition = None
            if ticket is not None:
                definition = await self._store.get_definition(ticket.definition_id)
            return decide_exit(ticket, definition, now, terminal_id=terminal_id, tz=self._tz)

        result = await self._run(code, decide)
        if result.success and result.overstay_minutes:
            _LOGGER.info(
                "Gate %s overstay code=%s minutes=%s charge=%s",
                terminal_id,
                code,
                result.overstay_minutes,
                result.overstay_charge,
            )
        self._finish("admit_exit", terminal_id, result)
        return result

    async def open_door(
        self,
        terminal_id: str,
        duration_ms: int | None = None,
        *,
        triggered_by: str = "operator",
    ) -> RelayEvent | None:
        """Open a door on demand and wait for the relay outcome.

        Returns None when door actuation is disabled.
        """
        relay = self.get_relay()
        if relay is None:
            _LOGGER.debug("Relay disabled, door for %s stays closed", terminal_id)
            return None
        event = await relay.open_door(
            terminal_id,
            duration_ms,
            triggered_by=triggered_by,
            now=self._clock(),
        )
        await self._events.append_relay_event(event)
        return event

    async def drain(self) -> None:
        """Wait for pending background door signals."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _prepare(self, code: str, now: datetime | None) -> tuple[str, datetime]:
        normalized = normalize_code(code, full_length=self._config.scanner.full_length)
        if not is_numeric(normalized):
            raise ValidationError("Code must contain digits only.")
        moment = now if now is not None else self._clock()
        return normalized, ensure_aware(moment, "now")

    async def _run(
        self,
        code: str,
        decide: Callable[[Ticket | None], Awaitable[_Result]],
    ) -> _Result:
        attempts = self._config.max_conflict_retries + 1
        for attempt in range(attempts):
            current = await self._store.get_ticket(code)
            result = await decide(current.ticket if current is not None else None)
            if not result.success:
                return result
            try:
                await self._store.put_ticket(
                    result.ticket,
                    expected_version=current.version if current is not None else None,
                )
            except ConflictError:
                if attempt >= attempts - 1:
                    raise
                _LOGGER.debug("Gate conflict on %s, retrying attempt=%s", code, attempt + 2)
                continue
            await self._events.append_event(result.event)
            return result
        raise ConflictError(f"Ticket {code} could not be updated.")

    def _finish(self, operation: str, terminal_id: str, result: _Result) -> None:
        _LOGGER.debug(
            "Gate %s %s completed outcome=%s", terminal_id, operation, result.outcome.value
        )
        if result.open_door:
            self._schedule_door(terminal_id)

    def _schedule_door(self, terminal_id: str) -> None:
        task = asyncio.create_task(self._signal_door(terminal_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _signal_door(self, terminal_id: str) -> RelayEvent | None:
        try:
            return await self.open_door(terminal_id, triggered_by="system")
        except TicketGateError as exc:
            _LOGGER.warning("Door signal for %s failed: %s", terminal_id, exc)
            return None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session
