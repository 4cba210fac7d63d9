"""
Submission Journal — recent submission attempts, for operators.

Behavioral Contract:
- Append-only; the oldest entries fall off once the journal is full.
- Never consulted by matching or dispatch. The ledger is the system of record.
- Totals per outcome count every attempt ever recorded, not just retained ones.
"""

from collections import Counter, deque
from typing import Deque, Dict, List, Optional

from flight_oracles.models.submission import SubmissionAttempt, SubmissionOutcome


class SubmissionJournal:
    """Bounded in-memory journal of finished submission attempts."""

    def __init__(self, max_entries: int = 1000):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._entries: Deque[SubmissionAttempt] = deque(maxlen=max_entries)
        self._totals: Counter = Counter()

    def record(self, attempt: SubmissionAttempt) -> None:
        self._entries.append(attempt)
        self._totals[attempt.outcome.value] += 1

    def query_recent(self, limit: int = 50) -> List[SubmissionAttempt]:
        """Most recent attempts, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._entries))[:limit]

    def query_by_oracle(self, address: str) -> List[SubmissionAttempt]:
        return [a for a in self._entries if a.oracle.address == address]

    def query_by_flight(self, flight: str, timestamp: Optional[int] = None) -> List[SubmissionAttempt]:
        return [
            a for a in self._entries
            if a.event.flight == flight
            and (timestamp is None or a.event.timestamp == timestamp)
        ]

    def totals(self) -> Dict[str, int]:
        return {outcome.value: self._totals[outcome.value] for outcome in SubmissionOutcome}

    def count(self) -> int:
        """Number of retained entries."""
        return len(self._entries)
