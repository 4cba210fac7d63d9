"""
Event Listener — follows OracleRequest events and fans out responses.

States:
  STREAMING → MATCH → (DISPATCH | MISS) → STREAMING

Events are handed to the matcher in the order the ledger delivers them.
Responses are sent in background tasks, so completion order is not defined.
A lost ledger connection ends the listener with TransportError; restarting
is left to the process supervisor.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from flight_oracles.dispatch.dispatcher import ResponseDispatcher
from flight_oracles.ledger.gateway import ORACLE_REQUEST, LedgerGateway
from flight_oracles.matching.matcher import match
from flight_oracles.models.oracle import OracleRegistry
from flight_oracles.models.query import QueryEvent
from flight_oracles.models.submission import SubmissionAttempt

logger = logging.getLogger(__name__)

EventCallback = Callable[[QueryEvent], Awaitable[None]]


async def listen(
    gateway: LedgerGateway,
    from_block: int,
    on_event: EventCallback,
) -> int:
    """
    Stream OracleRequest events from `from_block` into `on_event`.
    Returns the number of events handed off once the stream ends.
    """
    handed_off = 0
    async for record in gateway.subscribe(ORACLE_REQUEST, from_block):
        try:
            event = QueryEvent.from_event_args(record.args, record.block_number)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Skipping malformed %s event in block %s: %s",
                record.name, record.block_number, e,
            )
            continue
        await on_event(event)
        handed_off += 1
    return handed_off


class EventListener:
    """Matches each query against the registry and dispatches responses."""

    def __init__(self, registry: OracleRegistry, dispatcher: ResponseDispatcher):
        self.registry = registry
        self.dispatcher = dispatcher
        self._in_flight: Set[asyncio.Task] = set()
        self._running = False
        self.events_seen = 0
        self.events_matched = 0
        self.events_missed = 0

    @property
    def status(self) -> str:
        return "running" if self._running else "stopped"

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def on_event(self, event: QueryEvent) -> None:
        """Hand one query to the matcher and start its dispatches."""
        self.events_seen += 1
        oracles = match(event, self.registry)
        if not oracles:
            self.events_missed += 1
            logger.debug(
                "No local oracle holds index %d for %s", event.selector_index, event.key()
            )
            return

        self.events_matched += 1
        logger.info(
            "Query for %s (index %d) matched %d oracle(s)",
            event.key(), event.selector_index, len(oracles),
        )
        task = asyncio.create_task(self.dispatcher.dispatch_all(event, oracles))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def drain(self) -> List[SubmissionAttempt]:
        """Wait for every dispatch started so far. Nothing is cancelled."""
        attempts: List[SubmissionAttempt] = []
        while self._in_flight:
            pending = list(self._in_flight)
            results = await asyncio.gather(*pending, return_exceptions=True)
            self._in_flight.difference_update(pending)
            for result in results:
                if isinstance(result, BaseException):
                    logger.error("Dispatch task ended with %r", result)
                else:
                    attempts.extend(result)
        return attempts

    async def run(
        self,
        gateway: LedgerGateway,
        from_block: int = 0,
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        """Listen until the stream ends, `stop_event` is set, or the transport fails."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        stream = asyncio.create_task(listen(gateway, from_block, self.on_event))
        stopper = asyncio.create_task(stop_event.wait())
        try:
            await asyncio.wait({stream, stopper}, return_when=asyncio.FIRST_COMPLETED)
            if not stream.done():
                logger.info("Stopping OracleRequest subscription")
                stream.cancel()
                try:
                    await stream
                except asyncio.CancelledError:
                    pass
            else:
                # Re-raises TransportError from the stream
                stream.result()
        finally:
            stopper.cancel()
            if not stream.done():
                stream.cancel()
            await self.drain()
            self._running = False
