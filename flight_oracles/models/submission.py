"""Submission Attempt — one oracle's response to one query."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from flight_oracles.models.oracle import OracleIdentity
from flight_oracles.models.query import QueryEvent, StatusVerdict


class SubmissionOutcome(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SubmissionAttempt(BaseModel):
    """Outcome of submitting a verdict. Kept for observability only."""

    oracle: OracleIdentity
    event: QueryEvent
    verdict: StatusVerdict
    outcome: SubmissionOutcome = SubmissionOutcome.PENDING
    error: Optional[str] = None
    tx_hash: Optional[str] = None
    attempts: int = 0                       # Transport tries, including retries
    started_at: datetime
    finished_at: Optional[datetime] = None

    @property
    def accepted(self) -> bool:
        return self.outcome == SubmissionOutcome.ACCEPTED

    def summary(self) -> dict:
        """Flat view used by the journal and the status API."""
        return {
            "oracle": self.oracle.address,
            "selector_index": self.event.selector_index,
            "airline": self.event.airline,
            "flight": self.event.flight,
            "timestamp": self.event.timestamp,
            "verdict": int(self.verdict),
            "verdict_name": self.verdict.name,
            "outcome": self.outcome.value,
            "error": self.error,
            "tx_hash": self.tx_hash,
            "attempts": self.attempts,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
