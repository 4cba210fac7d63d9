"""
In-memory ledger — a simulation of the flight-surety contract's oracle section.

Used by tests and by local runs without a node. Mirrors the contract rules the
oracle node depends on:
- An oracle registers by paying the registration fee and receives three
  distinct pseudo-random indexes in 0..9.
- fetch_flight_status() opens a request under a random index and emits
  OracleRequest.
- A response is accepted only from a registered oracle holding the request's
  index, and only while the request is open.
- When MIN_RESPONSES oracles agree on a status the request closes and
  FlightStatusInfo is emitted.
"""

import asyncio
import hashlib
import random
from typing import AsyncIterator, Dict, List, Optional, Sequence, Set, Tuple

from flight_oracles.errors import SubmissionRejected, TransportError
from flight_oracles.ledger.gateway import (
    FLIGHT_STATUS_INFO,
    ORACLE_REPORT,
    ORACLE_REQUEST,
    LedgerEvent,
)

REGISTRATION_FEE = 10 ** 18                 # 1 ether, in wei
MIN_RESPONSES = 3
INDEX_RANGE = 10


def _address(seed: str) -> str:
    return "0x" + hashlib.sha256(seed.encode()).hexdigest()[:40]


class InMemoryLedger:
    """Single-process stand-in for the ledger and the deployed contract."""

    def __init__(
        self,
        accounts: Optional[Sequence[str]] = None,
        account_count: int = 50,
        registration_fee: int = REGISTRATION_FEE,
        min_responses: int = MIN_RESPONSES,
        seed: Optional[int] = None,
        stringify_indexes: bool = False,
    ):
        self._accounts = list(accounts) if accounts is not None else [
            _address(f"account-{i}") for i in range(account_count)
        ]
        self._fee = registration_fee
        self.min_responses = min_responses
        self._rng = random.Random(seed)
        self._stringify_indexes = stringify_indexes

        self._oracles: Dict[str, Tuple[int, ...]] = {}
        self._requests: Dict[Tuple[int, str, str, int], dict] = {}
        self._flight_statuses: Dict[Tuple[str, str, int], int] = {}
        self._events: List[LedgerEvent] = []
        self._block_number = 0
        self._tx_counter = 0
        self._waiters: List[asyncio.Event] = []
        self._closed = False
        self._disconnected = False

        # Recorded calls, for inspection
        self.registrations: List[dict] = []
        self.submissions: List[dict] = []

        # Failure injection
        self.rejected_registrations: Set[str] = set()
        self.failed_index_reads: Set[str] = set()
        self.rejected_submitters: Set[str] = set()
        self.submission_delay: float = 0.0

    # --- Gateway interface ---

    async def accounts(self) -> List[str]:
        return list(self._accounts)

    async def registration_fee(self) -> int:
        return self._fee

    async def register_oracle(
        self, account: str, fee: int, gas_limit: Optional[int] = None
    ) -> str:
        self._check_connected()
        if account in self.rejected_registrations:
            raise SubmissionRejected(f"registerOracle reverted for {account}")
        if fee < self._fee:
            raise SubmissionRejected("Registration fee is required")
        if account in self._oracles:
            raise SubmissionRejected("Oracle is already registered")

        self._oracles[account] = self._generate_indexes()
        self.registrations.append({"account": account, "fee": fee, "gas": gas_limit})
        return self._next_tx()

    async def get_assigned_indexes(self, account: str) -> Sequence:
        self._check_connected()
        if account in self.failed_index_reads:
            raise SubmissionRejected(f"getMyIndexes reverted for {account}")
        indexes = self._oracles.get(account)
        if indexes is None:
            raise SubmissionRejected("Not registered as an oracle")
        if self._stringify_indexes:
            return [str(i) for i in indexes]
        return list(indexes)

    async def subscribe(
        self, event_name: str, from_block: int = 0
    ) -> AsyncIterator[LedgerEvent]:
        waiter = asyncio.Event()
        self._waiters.append(waiter)
        position = 0
        try:
            while True:
                self._check_connected()
                while position < len(self._events):
                    event = self._events[position]
                    position += 1
                    if event.name == event_name and (event.block_number or 0) >= from_block:
                        yield event
                        self._check_connected()
                if self._closed:
                    return
                waiter.clear()
                await waiter.wait()
        finally:
            self._waiters.remove(waiter)

    async def submit_response(
        self,
        selector_index: int,
        airline: str,
        flight: str,
        timestamp: int,
        verdict: int,
        from_account: str,
        gas_limit: int,
    ) -> str:
        self._check_connected()
        if self.submission_delay:
            await asyncio.sleep(self.submission_delay)

        record = {
            "index": selector_index,
            "airline": airline,
            "flight": flight,
            "timestamp": timestamp,
            "status": verdict,
            "from": from_account,
            "gas": gas_limit,
        }
        self.submissions.append(record)

        if from_account in self.rejected_submitters:
            raise SubmissionRejected(f"submitOracleResponse reverted for {from_account}")
        indexes = self._oracles.get(from_account)
        if indexes is None:
            raise SubmissionRejected("Not registered as an oracle")
        if selector_index not in indexes:
            raise SubmissionRejected("Index does not match oracle request")

        key = (selector_index, airline, flight, timestamp)
        request = self._requests.get(key)
        if request is None or not request["is_open"]:
            raise SubmissionRejected("Flight or timestamp do not match oracle request")

        responders = request["responses"].setdefault(verdict, [])
        if from_account in responders:
            raise SubmissionRejected("Oracle has already responded")
        responders.append(from_account)

        tx_hash = self._next_tx()
        self._emit(ORACLE_REPORT, {
            "airline": airline, "flight": flight, "timestamp": timestamp, "status": verdict,
        }, tx_hash)

        if len(responders) >= self.min_responses:
            request["is_open"] = False
            self._flight_statuses[(airline, flight, timestamp)] = verdict
            self._emit(FLIGHT_STATUS_INFO, {
                "airline": airline, "flight": flight, "timestamp": timestamp, "status": verdict,
            }, tx_hash)
        return tx_hash

    # --- Contract-side operations (not used by the oracle node) ---

    def fetch_flight_status(
        self,
        airline: str,
        flight: str,
        timestamp: int,
        index: Optional[int] = None,
    ) -> LedgerEvent:
        """Open an oracle request, as a passenger-facing dapp would."""
        if index is None:
            index = self._rng.randrange(INDEX_RANGE)
        key = (index, airline, flight, timestamp)
        self._requests[key] = {"is_open": True, "responses": {}}
        return self._emit(ORACLE_REQUEST, {
            "index": index, "airline": airline, "flight": flight, "timestamp": timestamp,
        }, self._next_tx())

    def register_oracle_with_indexes(self, account: str, indexes: Sequence[int]) -> None:
        """Seed an oracle with fixed indexes, bypassing the random assignment."""
        self._oracles[account] = tuple(indexes)

    def flight_status(self, airline: str, flight: str, timestamp: int) -> Optional[int]:
        return self._flight_statuses.get((airline, flight, timestamp))

    def is_request_open(self, index: int, airline: str, flight: str, timestamp: int) -> bool:
        request = self._requests.get((index, airline, flight, timestamp))
        return bool(request and request["is_open"])

    def events(self, name: Optional[str] = None) -> List[LedgerEvent]:
        return [e for e in self._events if name is None or e.name == name]

    def close(self) -> None:
        """End all subscriptions once they have caught up."""
        self._closed = True
        self._wake()

    def disconnect(self) -> None:
        """Simulate a dropped connection."""
        self._disconnected = True
        self._wake()

    # --- Internals ---

    def _generate_indexes(self) -> Tuple[int, ...]:
        return tuple(self._rng.sample(range(INDEX_RANGE), 3))

    def _next_tx(self) -> str:
        self._tx_counter += 1
        self._block_number += 1
        return "0x" + hashlib.sha256(f"tx-{self._tx_counter}".encode()).hexdigest()

    def _emit(self, name: str, args: dict, tx_hash: str) -> LedgerEvent:
        event = LedgerEvent(
            name=name, args=args, block_number=self._block_number, tx_hash=tx_hash
        )
        self._events.append(event)
        self._wake()
        return event

    def _wake(self) -> None:
        for waiter in self._waiters:
            waiter.set()

    def _check_connected(self) -> None:
        if self._disconnected:
            raise TransportError("Connection to ledger lost")
