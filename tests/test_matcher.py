"""Tests for the Query Matcher."""

import pytest

from flight_oracles.matching.matcher import match
from flight_oracles.models.oracle import OracleIdentity, OracleRegistry
from flight_oracles.models.query import QueryEvent


def _make_registry(*index_sets) -> OracleRegistry:
    registry = OracleRegistry()
    for i, indexes in enumerate(index_sets, start=1):
        registry.add(OracleIdentity(address=f"0xoracle{i}", indexes=indexes))
    return registry.freeze()


def _event(selector) -> QueryEvent:
    return QueryEvent(
        selector_index=selector, airline="0xair", flight="ND1309", timestamp=1700000000
    )


class TestMatch:
    def test_oracle_holding_selector_matches(self):
        registry = _make_registry([3, 7, 9])
        assert [o.address for o in match(_event(7), registry)] == ["0xoracle1"]

    def test_oracle_without_selector_does_not_match(self):
        registry = _make_registry([3, 7, 9])
        assert match(_event(8), registry) == []

    def test_returns_exactly_the_holders(self):
        registry = _make_registry([1, 2], [2, 3], [4, 5], [1, 5], [3, 4])
        matched = match(_event(5), registry)
        assert {o.address for o in matched} == {"0xoracle3", "0xoracle4"}

    def test_no_match_is_empty_not_error(self):
        registry = _make_registry([0, 1, 2], [3, 4, 5])
        assert match(_event(9), registry) == []

    def test_empty_registry(self):
        assert match(_event(1), OracleRegistry().freeze()) == []

    def test_match_is_pure(self):
        registry = _make_registry([1, 2], [2, 3])
        before = registry.snapshot()
        match(_event(2), registry)
        match(_event(2), registry)
        assert registry.snapshot() == before


class TestIndexRepresentation:
    """String-typed indexes from the ledger must still match numeric selectors."""

    @pytest.mark.parametrize("selector", [7, "7", b"7"])
    def test_selector_forms_match_int_indexes(self, selector):
        registry = _make_registry([3, 7, 9])
        assert len(match(_event(selector), registry)) == 1

    @pytest.mark.parametrize("selector", [7, "7"])
    def test_selector_forms_match_string_indexes(self, selector):
        registry = _make_registry(["3", "7", "9"])
        assert len(match(_event(selector), registry)) == 1

    def test_string_indexes_do_not_substring_match(self):
        registry = _make_registry(["17", "27"])
        assert match(_event(7), registry) == []
        assert match(_event("1"), registry) == []
