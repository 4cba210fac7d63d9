"""
Response Dispatcher — submits one oracle's verdict for one query.

Behavioral Contract:
- Every submission carries a fixed gas ceiling.
- A refused or failed submission is logged and returned as a rejected attempt.
  It never raises, so sibling submissions and later events are unaffected.
- Ledger rejections are final. Transport failures and timeouts are retried
  only when a retry budget is configured.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from flight_oracles.dispatch.verdicts import RandomVerdictSource, VerdictSource
from flight_oracles.errors import SubmissionRejected, TransportError
from flight_oracles.journal.store import SubmissionJournal
from flight_oracles.ledger.gateway import LedgerGateway
from flight_oracles.models.oracle import OracleIdentity
from flight_oracles.models.query import QueryEvent, StatusVerdict
from flight_oracles.models.submission import SubmissionAttempt, SubmissionOutcome

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 200_000


class ResponseDispatcher:
    """Sends oracle responses through the ledger gateway."""

    def __init__(
        self,
        gateway: LedgerGateway,
        verdict_source: Optional[VerdictSource] = None,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        submission_timeout: Optional[float] = None,
        max_retries: int = 0,
        journal: Optional[SubmissionJournal] = None,
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.gateway = gateway
        self.verdict_source = verdict_source or RandomVerdictSource()
        self.gas_limit = gas_limit
        self.submission_timeout = submission_timeout
        self.max_retries = max_retries
        self.journal = journal

    async def dispatch(self, oracle: OracleIdentity, event: QueryEvent) -> SubmissionAttempt:
        """Choose a verdict for `event` and submit it from `oracle`'s account."""
        started_at = datetime.utcnow()
        try:
            verdict = StatusVerdict(self.verdict_source.choose(oracle, event))
        except Exception as e:
            logger.error("Verdict source failed for oracle %s: %s", oracle.address, e)
            return self._finish(SubmissionAttempt(
                oracle=oracle,
                event=event,
                verdict=StatusVerdict.UNKNOWN,
                outcome=SubmissionOutcome.REJECTED,
                error=f"verdict source failed: {e}",
                started_at=started_at,
            ))

        attempt = SubmissionAttempt(
            oracle=oracle, event=event, verdict=verdict, started_at=started_at
        )
        try:
            attempt.tx_hash = await self._submit(attempt)
            attempt.outcome = SubmissionOutcome.ACCEPTED
            logger.info(
                "Oracle %s answered %s %s (index %d) with %s",
                oracle.address, event.flight, event.timestamp,
                event.selector_index, verdict.name,
            )
        except SubmissionRejected as e:
            attempt.outcome = SubmissionOutcome.REJECTED
            attempt.error = e.reason
            attempt.tx_hash = e.tx_hash
            logger.warning(
                "Response from oracle %s for %s rejected: %s",
                oracle.address, event.flight, e.reason,
            )
        except Exception as e:
            attempt.outcome = SubmissionOutcome.REJECTED
            attempt.error = str(e) or type(e).__name__
            logger.error(
                "Response from oracle %s for %s failed after %d attempt(s): %s",
                oracle.address, event.flight, attempt.attempts, attempt.error,
            )
        return self._finish(attempt)

    async def dispatch_all(
        self, event: QueryEvent, oracles: Iterable[OracleIdentity]
    ) -> List[SubmissionAttempt]:
        """Submit for every matched oracle concurrently and wait for all of them."""
        tasks = [self.dispatch(oracle, event) for oracle in oracles]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def _submit(self, attempt: SubmissionAttempt) -> str:
        """Send the transaction, retrying transport failures within budget."""
        event = attempt.event
        last_error: Optional[Exception] = None

        for try_number in range(1, self.max_retries + 2):
            attempt.attempts = try_number
            call = self.gateway.submit_response(
                event.selector_index,
                event.airline,
                event.flight,
                event.timestamp,
                int(attempt.verdict),
                attempt.oracle.address,
                self.gas_limit,
            )
            try:
                if self.submission_timeout is None:
                    return await call
                return await asyncio.wait_for(call, timeout=self.submission_timeout)
            except (TransportError, asyncio.TimeoutError) as e:
                last_error = e
                if try_number <= self.max_retries:
                    logger.info(
                        "Retrying response from oracle %s (%d/%d): %s",
                        attempt.oracle.address, try_number, self.max_retries,
                        str(e) or "timed out",
                    )

        if isinstance(last_error, asyncio.TimeoutError):
            raise TransportError(
                f"Submission timed out after {self.submission_timeout}s"
            ) from last_error
        raise last_error

    def _finish(self, attempt: SubmissionAttempt) -> SubmissionAttempt:
        attempt.finished_at = datetime.utcnow()
        if self.journal is not None:
            self.journal.record(attempt)
        return attempt
