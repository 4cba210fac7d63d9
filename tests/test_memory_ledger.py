"""Tests for the in-memory ledger simulation."""

import asyncio

import pytest

from flight_oracles.errors import SubmissionRejected, TransportError
from flight_oracles.ledger.gateway import FLIGHT_STATUS_INFO, ORACLE_REPORT, ORACLE_REQUEST
from flight_oracles.ledger.memory import MIN_RESPONSES, REGISTRATION_FEE, InMemoryLedger

AIRLINE = "0xairline"
TIMESTAMP = 1700000000


def _submit(ledger, account, index=4, status=20, flight="ND1309"):
    return asyncio.run(
        ledger.submit_response(index, AIRLINE, flight, TIMESTAMP, status, account, 200_000)
    )


class TestRegistration:
    def test_register_assigns_three_distinct_indexes(self):
        ledger = InMemoryLedger(seed=5)
        asyncio.run(ledger.register_oracle("0xo1", REGISTRATION_FEE))
        indexes = asyncio.run(ledger.get_assigned_indexes("0xo1"))
        assert len(indexes) == 3
        assert len(set(indexes)) == 3
        assert all(0 <= i < 10 for i in indexes)

    def test_same_seed_same_indexes(self):
        a, b = InMemoryLedger(seed=9), InMemoryLedger(seed=9)
        for ledger in (a, b):
            asyncio.run(ledger.register_oracle("0xo1", REGISTRATION_FEE))
        assert asyncio.run(a.get_assigned_indexes("0xo1")) == asyncio.run(b.get_assigned_indexes("0xo1"))

    def test_fee_is_required(self):
        ledger = InMemoryLedger()
        with pytest.raises(SubmissionRejected, match="fee"):
            asyncio.run(ledger.register_oracle("0xo1", REGISTRATION_FEE - 1))

    def test_cannot_register_twice(self):
        ledger = InMemoryLedger()
        asyncio.run(ledger.register_oracle("0xo1", REGISTRATION_FEE))
        with pytest.raises(SubmissionRejected):
            asyncio.run(ledger.register_oracle("0xo1", REGISTRATION_FEE))

    def test_unregistered_oracle_has_no_indexes(self):
        ledger = InMemoryLedger()
        with pytest.raises(SubmissionRejected):
            asyncio.run(ledger.get_assigned_indexes("0xnobody"))

    def test_stringified_indexes(self):
        ledger = InMemoryLedger(stringify_indexes=True)
        ledger.register_oracle_with_indexes("0xo1", [1, 2, 3])
        assert asyncio.run(ledger.get_assigned_indexes("0xo1")) == ["1", "2", "3"]


class TestResponses:
    def setup_method(self):
        self.ledger = InMemoryLedger(seed=1)
        for n in range(1, 5):
            self.ledger.register_oracle_with_indexes(f"0xo{n}", [4, 5, 6])
        self.ledger.register_oracle_with_indexes("0xother", [7, 8, 9])
        self.request = self.ledger.fetch_flight_status(AIRLINE, "ND1309", TIMESTAMP, index=4)

    def test_request_event(self):
        assert self.request.name == ORACLE_REQUEST
        assert self.request.args == {
            "index": 4, "airline": AIRLINE, "flight": "ND1309", "timestamp": TIMESTAMP,
        }
        assert self.ledger.is_request_open(4, AIRLINE, "ND1309", TIMESTAMP)

    def test_accepted_response_emits_report(self):
        tx_hash = _submit(self.ledger, "0xo1")
        assert tx_hash.startswith("0x")
        reports = self.ledger.events(ORACLE_REPORT)
        assert len(reports) == 1
        assert reports[0].args["status"] == 20

    def test_oracle_without_index_is_rejected(self):
        with pytest.raises(SubmissionRejected, match="Index does not match"):
            _submit(self.ledger, "0xother")

    def test_unknown_request_is_rejected(self):
        with pytest.raises(SubmissionRejected):
            _submit(self.ledger, "0xo1", flight="XX0000")

    def test_duplicate_response_is_rejected(self):
        _submit(self.ledger, "0xo1")
        with pytest.raises(SubmissionRejected, match="already responded"):
            _submit(self.ledger, "0xo1")

    def test_agreement_closes_request(self):
        for n in range(1, MIN_RESPONSES + 1):
            _submit(self.ledger, f"0xo{n}", status=30)

        assert not self.ledger.is_request_open(4, AIRLINE, "ND1309", TIMESTAMP)
        assert self.ledger.flight_status(AIRLINE, "ND1309", TIMESTAMP) == 30
        info = self.ledger.events(FLIGHT_STATUS_INFO)
        assert len(info) == 1
        assert info[0].args["status"] == 30

        with pytest.raises(SubmissionRejected):
            _submit(self.ledger, "0xo4", status=30)

    def test_disagreement_keeps_request_open(self):
        for n, status in zip(range(1, 5), [10, 20, 30, 40]):
            _submit(self.ledger, f"0xo{n}", status=status)
        assert self.ledger.is_request_open(4, AIRLINE, "ND1309", TIMESTAMP)
        assert self.ledger.flight_status(AIRLINE, "ND1309", TIMESTAMP) is None

    def test_disconnect(self):
        self.ledger.disconnect()
        with pytest.raises(TransportError):
            _submit(self.ledger, "0xo1")
