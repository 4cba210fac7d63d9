"""
Oracle Node — wires bootstrap, matching, dispatch and listening together.

Lifecycle:
  CREATED → BOOTSTRAPPING → LISTENING → STOPPED
                         ↘ FAILED
"""

import asyncio
import logging
from typing import Optional

from flight_oracles.dispatch.dispatcher import ResponseDispatcher
from flight_oracles.dispatch.verdicts import RandomVerdictSource, VerdictSource
from flight_oracles.journal.store import SubmissionJournal
from flight_oracles.ledger.gateway import LedgerGateway
from flight_oracles.listener.loop import EventListener
from flight_oracles.models.config import OracleNodeConfig
from flight_oracles.models.oracle import OracleRegistry
from flight_oracles.registry.bootstrap import bootstrap

logger = logging.getLogger(__name__)


class OracleNode:
    """One oracle process: a registered pool answering flight-status queries."""

    def __init__(
        self,
        gateway: LedgerGateway,
        config: Optional[OracleNodeConfig] = None,
        verdict_source: Optional[VerdictSource] = None,
        journal: Optional[SubmissionJournal] = None,
    ):
        self.gateway = gateway
        self.config = config or OracleNodeConfig()
        self.journal = journal or SubmissionJournal(max_entries=self.config.journal_size)
        self.dispatcher = ResponseDispatcher(
            gateway=gateway,
            verdict_source=verdict_source or RandomVerdictSource(self.config.verdict_seed),
            gas_limit=self.config.gas_limit,
            submission_timeout=self.config.submission_timeout_seconds,
            max_retries=self.config.max_submission_retries,
            journal=self.journal,
        )
        self.registry: Optional[OracleRegistry] = None
        self.listener: Optional[EventListener] = None
        self.state = "created"
        self.error: Optional[str] = None

    async def bootstrap(self) -> OracleRegistry:
        """Register the oracle pool. Safe to call once."""
        if self.registry is not None:
            return self.registry
        self.state = "bootstrapping"
        try:
            self.registry = await bootstrap(
                pool_size=self.config.pool_size,
                gateway=self.gateway,
                account_offset=self.config.account_offset,
                expected_fee=self.config.expected_registration_fee,
                gas_limit=self.config.registration_gas_limit,
            )
        except Exception as e:
            self.state = "failed"
            self.error = str(e)
            raise
        self.listener = EventListener(self.registry, self.dispatcher)
        return self.registry

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Bootstrap if needed, then answer queries until stopped or disconnected."""
        await self.bootstrap()
        self.state = "listening"
        logger.info(
            "Listening for OracleRequest events from block %d with %d oracles",
            self.config.from_block, len(self.registry),
        )
        try:
            await self.listener.run(self.gateway, self.config.from_block, stop_event)
        except Exception as e:
            self.state = "failed"
            self.error = str(e)
            logger.error("Oracle listener stopped: %s", e)
            raise
        self.state = "stopped"

    def status(self) -> dict:
        listener = self.listener
        return {
            "state": self.state,
            "error": self.error,
            "oracles": len(self.registry) if self.registry is not None else 0,
            "requested_pool_size": self.config.pool_size,
            "events_seen": listener.events_seen if listener else 0,
            "events_matched": listener.events_matched if listener else 0,
            "events_missed": listener.events_missed if listener else 0,
            "dispatches_in_flight": listener.in_flight if listener else 0,
            "submissions": self.journal.totals(),
        }
