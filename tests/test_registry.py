"""Tests for the Oracle Registry bootstrap."""

import asyncio
import logging

import pytest

from flight_oracles.errors import RegistrationError, SubmissionRejected, TransportError
from flight_oracles.ledger.memory import REGISTRATION_FEE, InMemoryLedger
from flight_oracles.registry.bootstrap import bootstrap


class _RecordingLedger(InMemoryLedger):
    """Records the order of registration and index read-back calls."""

    def __init__(self, read_delay: float = 0.01, **kwargs):
        super().__init__(**kwargs)
        self.calls = []
        self.read_delay = read_delay

    async def register_oracle(self, account, fee, gas_limit=None):
        self.calls.append(("register", account))
        await asyncio.sleep(0)
        return await super().register_oracle(account, fee, gas_limit)

    async def get_assigned_indexes(self, account):
        self.calls.append(("read-start", account))
        await asyncio.sleep(self.read_delay)
        indexes = await super().get_assigned_indexes(account)
        self.calls.append(("read-end", account))
        return indexes


class _RevertingFeeLedger(InMemoryLedger):
    async def registration_fee(self):
        raise SubmissionRejected("REGISTRATION_FEE call failed: execution reverted")


class _MissingIndexesLedger(InMemoryLedger):
    """Answers the index read-back for one account with nothing."""

    def __init__(self, empty_account, **kwargs):
        super().__init__(**kwargs)
        self.empty_account = empty_account

    async def get_assigned_indexes(self, account):
        if account == self.empty_account:
            return None
        return await super().get_assigned_indexes(account)


class TestBootstrap:
    def test_registers_requested_pool(self):
        ledger = InMemoryLedger(seed=1)
        registry = asyncio.run(bootstrap(5, ledger, account_offset=10, gas_limit=3_000_000))

        accounts = asyncio.run(ledger.accounts())
        assert len(registry) == 5
        assert {o.address for o in registry} == set(accounts[10:15])
        assert registry.frozen

        for oracle in registry:
            assert len(oracle.indexes) == 3
            assert len(set(oracle.indexes)) == 3
            assert all(0 <= i <= 9 for i in oracle.indexes)

        assert all(r["fee"] == REGISTRATION_FEE for r in ledger.registrations)
        assert all(r["gas"] == 3_000_000 for r in ledger.registrations)

    def test_reserved_accounts_are_skipped(self):
        ledger = InMemoryLedger(seed=1)
        registry = asyncio.run(bootstrap(3, ledger, account_offset=10))
        accounts = asyncio.run(ledger.accounts())
        for reserved in accounts[:10]:
            assert reserved not in registry

    def test_indexes_match_ledger_after_bootstrap(self):
        ledger = InMemoryLedger(seed=7)
        registry = asyncio.run(bootstrap(4, ledger, account_offset=0))
        for oracle in registry:
            assert list(oracle.indexes) == asyncio.run(ledger.get_assigned_indexes(oracle.address))

    def test_string_indexes_are_canonicalized(self):
        ledger = InMemoryLedger(seed=3, stringify_indexes=True)
        registry = asyncio.run(bootstrap(3, ledger, account_offset=0))
        for oracle in registry:
            assert all(isinstance(i, int) for i in oracle.indexes)

    def test_read_back_overlaps_next_registration(self):
        ledger = _RecordingLedger(seed=1)
        registry = asyncio.run(bootstrap(3, ledger, account_offset=0))
        accounts = asyncio.run(ledger.accounts())

        assert len(registry) == 3
        registrations = [c for c in ledger.calls if c[0] == "register"]
        assert [a for _, a in registrations] == accounts[:3]
        assert ledger.calls.index(("register", accounts[1])) < ledger.calls.index(
            ("read-end", accounts[0])
        )

    def test_failed_registration_is_skipped(self, caplog):
        ledger = InMemoryLedger(seed=1)
        accounts = asyncio.run(ledger.accounts())
        ledger.rejected_registrations.add(accounts[11])

        with caplog.at_level(logging.WARNING):
            registry = asyncio.run(bootstrap(3, ledger, account_offset=10))

        assert len(registry) == 2
        assert accounts[11] not in registry
        assert "registration failed" in caplog.text
        assert "pool is short: 2 of 3" in caplog.text

    def test_failed_index_read_is_skipped(self):
        ledger = InMemoryLedger(seed=1)
        accounts = asyncio.run(ledger.accounts())
        ledger.failed_index_reads.add(accounts[0])

        registry = asyncio.run(bootstrap(3, ledger, account_offset=0))
        assert len(registry) == 2
        assert accounts[0] not in registry

    def test_total_failure_is_fatal(self):
        ledger = InMemoryLedger(seed=1)
        accounts = asyncio.run(ledger.accounts())
        ledger.rejected_registrations.update(accounts[:3])

        with pytest.raises(RegistrationError):
            asyncio.run(bootstrap(3, ledger, account_offset=0))

    def test_fee_mismatch_is_fatal(self):
        ledger = InMemoryLedger(registration_fee=REGISTRATION_FEE)
        with pytest.raises(RegistrationError, match="fee mismatch"):
            asyncio.run(bootstrap(3, ledger, expected_fee=REGISTRATION_FEE // 2))
        assert ledger.registrations == []

    def test_zero_fee_is_fatal(self):
        ledger = InMemoryLedger(registration_fee=0)
        with pytest.raises(RegistrationError):
            asyncio.run(bootstrap(3, ledger))

    def test_account_pool_exhausted(self):
        ledger = InMemoryLedger(account_count=12)
        with pytest.raises(RegistrationError, match="exhausted"):
            asyncio.run(bootstrap(5, ledger, account_offset=10))
        assert ledger.registrations == []

    def test_transport_failure_propagates(self):
        ledger = InMemoryLedger()
        ledger.disconnect()
        with pytest.raises(TransportError):
            asyncio.run(bootstrap(3, ledger))

    def test_refused_fee_read_is_registration_error(self):
        ledger = _RevertingFeeLedger()
        with pytest.raises(RegistrationError, match="execution reverted"):
            asyncio.run(bootstrap(3, ledger))
        assert ledger.registrations == []

    def test_missing_index_set_is_skipped(self):
        accounts = asyncio.run(InMemoryLedger(seed=1).accounts())
        ledger = _MissingIndexesLedger(accounts[1], seed=1)

        registry = asyncio.run(bootstrap(3, ledger, account_offset=0))
        assert len(registry) == 2
        assert accounts[1] not in registry
