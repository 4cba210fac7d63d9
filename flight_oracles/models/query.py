"""Query Event — one flight-status request read from the ledger."""

from enum import IntEnum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class StatusVerdict(IntEnum):
    """Flight status codes understood by the insurance contract."""
    UNKNOWN = 0
    ON_TIME = 10
    LATE_AIRLINE = 20
    LATE_WEATHER = 30
    LATE_TECHNICAL = 40
    LATE_OTHER = 50


def canonical_index(value: Any) -> int:
    """
    Convert a raw selector index into its canonical form.

    The ledger hands indexes back as ints, decimal strings or bytes depending
    on the transport. Every index held by the node goes through here, so a
    query selector and an oracle's stored indexes are always compared as the
    same type.
    """
    if isinstance(value, bool):
        raise ValueError(f"Index must be an integer, got bool {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, (str, bytes)):
        text = value.decode("ascii") if isinstance(value, bytes) else value
        text = text.strip()
        if not text.isdigit():
            raise ValueError(f"Index is not a decimal integer: {value!r}")
        result = int(text)
    else:
        raise ValueError(f"Unsupported index type {type(value).__name__}: {value!r}")

    if result < 0:
        raise ValueError(f"Index must be non-negative, got {result}")
    return result


class QueryEvent(BaseModel):
    """An OracleRequest emitted by the contract. Consumed once by the matcher."""

    model_config = ConfigDict(frozen=True)

    selector_index: int
    airline: str                            # Airline account address
    flight: str                             # e.g., "ND1309"
    timestamp: int                          # Scheduled departure, unix seconds
    block_number: Optional[int] = None

    @field_validator("selector_index", mode="before")
    @classmethod
    def _canonical_selector(cls, value: Any) -> int:
        return canonical_index(value)

    @classmethod
    def from_event_args(
        cls, args: Mapping[str, Any], block_number: Optional[int] = None
    ) -> "QueryEvent":
        """Build from the decoded arguments of an OracleRequest log."""
        return cls(
            selector_index=args["index"],
            airline=str(args["airline"]),
            flight=str(args["flight"]),
            timestamp=int(args["timestamp"]),
            block_number=block_number,
        )

    def key(self) -> str:
        """Identifies the flight this query is about."""
        return f"{self.airline}:{self.flight}:{self.timestamp}"
