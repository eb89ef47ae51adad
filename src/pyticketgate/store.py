"""Store interfaces (repository pattern) and in-memory implementations.

Stores must be swappable and return domain models. Ticket writes are
compare-and-set on a per-ticket version so that two terminals scanning the
same code cannot both win.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable

from .exceptions import ConflictError
from .models import AdmissionEvent, CodeDefinition, RelayEvent, Ticket, VersionedTicket


class TicketStore(ABC):
    """Interface for ticket and definition persistence."""

    @abstractmethod
    async def get_ticket(self, code: str) -> VersionedTicket | None:
        """Return the ticket stored under ``code`` with its version, or None."""

    @abstractmethod
    async def put_ticket(self, ticket: Ticket, *, expected_version: int | None) -> int:
        """Write ``ticket`` if the stored version still equals ``expected_version``.

        ``expected_version=None`` means the ticket must not exist yet.

        Raises:
            ConflictError: If the stored version differs.
        """

    @abstractmethod
    async def list_definitions(self, *, active_only: bool = True) -> list[CodeDefinition]:
        """Return definitions in resolution order."""

    @abstractmethod
    async def get_definition(self, definition_id: str) -> CodeDefinition | None:
        """Return a definition by id, or None if not found."""


class EventSink(ABC):
    """Interface for recording scan and relay events."""

    @abstractmethod
    async def append_event(self, event: AdmissionEvent) -> None:
        """Record an admission event."""

    @abstractmethod
    async def append_relay_event(self, event: RelayEvent) -> None:
        """Record a door relay actuation."""


class MemoryTicketStore(TicketStore):
    """Process-local store, used by tests and the kiosk simulator."""

    def __init__(
        self,
        definitions: Iterable[CodeDefinition] = (),
        tickets: Iterable[Ticket] = (),
    ) -> None:
        self._definitions: list[CodeDefinition] = list(definitions)
        self._tickets: dict[str, VersionedTicket] = {}
        self._lock = asyncio.Lock()
        for ticket in tickets:
            self._tickets[ticket.code] = VersionedTicket(ticket=ticket, version=1)

    def add_definition(self, definition: CodeDefinition) -> None:
        self._definitions.append(definition)

    async def get_ticket(self, code: str) -> VersionedTicket | None:
        return self._tickets.get(code)

    async def put_ticket(self, ticket: Ticket, *, expected_version: int | None) -> int:
        async with self._lock:
            current = self._tickets.get(ticket.code)
            current_version = current.version if current is not None else None
            if current_version != expected_version:
                raise ConflictError(
                    f"Ticket {ticket.code} changed concurrently.",
                    detail=f"expected={expected_version} actual={current_version}",
                )
            version = (current_version or 0) + 1
            self._tickets[ticket.code] = VersionedTicket(ticket=ticket, version=version)
            return version

    async def delete_ticket(self, code: str) -> None:
        async with self._lock:
            self._tickets.pop(code, None)

    async def list_tickets(self) -> list[Ticket]:
        return [entry.ticket for entry in self._tickets.values()]

    async def list_definitions(self, *, active_only: bool = True) -> list[CodeDefinition]:
        if not active_only:
            return list(self._definitions)
        return [definition for definition in self._definitions if definition.active]

    async def get_definition(self, definition_id: str) -> CodeDefinition | None:
        for definition in self._definitions:
            if definition.id == definition_id:
                return definition
        return None


class MemoryEventSink(EventSink):
    def __init__(self) -> None:
        self.events: list[AdmissionEvent] = []
        self.relay_events: list[RelayEvent] = []

    async def append_event(self, event: AdmissionEvent) -> None:
        self.events.append(event)

    async def append_relay_event(self, event: RelayEvent) -> None:
        self.relay_events.append(event)
