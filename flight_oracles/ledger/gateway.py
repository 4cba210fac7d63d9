"""
Ledger Gateway — the node's only view of the ledger.

Behavioral Contract:
- Transactions are sent from an explicit account; the gateway holds no default.
- A refused transaction raises SubmissionRejected.
- A lost connection raises TransportError, from calls and from subscriptions.
- subscribe() replays history from `from_block`, then follows new events in
  ledger order.
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel

ORACLE_REQUEST = "OracleRequest"
ORACLE_REPORT = "OracleReport"
FLIGHT_STATUS_INFO = "FlightStatusInfo"


class LedgerEvent(BaseModel):
    """A decoded contract log."""

    name: str
    args: Dict[str, Any]
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None


class LedgerGateway(Protocol):
    """Protocol for ledger access — in-memory simulation or web3."""

    async def accounts(self) -> List[str]:
        ...

    async def registration_fee(self) -> int:
        ...

    async def register_oracle(
        self, account: str, fee: int, gas_limit: Optional[int] = None
    ) -> str:
        """Pay the fee from `account`. Returns the transaction hash."""
        ...

    async def get_assigned_indexes(self, account: str) -> Sequence[Any]:
        ...

    def subscribe(self, event_name: str, from_block: int = 0) -> AsyncIterator[LedgerEvent]:
        ...

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
        """Send an oracle response. Returns the transaction hash."""
        ...
