"""Verdict sources — where an oracle's flight status answer comes from."""

import random
from itertools import cycle
from typing import Iterable, Optional, Protocol

from flight_oracles.models.oracle import OracleIdentity
from flight_oracles.models.query import QueryEvent, StatusVerdict

ALL_VERDICTS = tuple(StatusVerdict)


class VerdictSource(Protocol):
    """Protocol for verdict selection — pluggable backend."""

    def choose(self, oracle: OracleIdentity, event: QueryEvent) -> StatusVerdict:
        ...


class RandomVerdictSource:
    """
    Picks a status uniformly at random, simulating oracles that disagree.
    A seed makes the sequence of verdicts reproducible.
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def choose(self, oracle: OracleIdentity, event: QueryEvent) -> StatusVerdict:
        return self._rng.choice(ALL_VERDICTS)


class FixedVerdictSource:
    """Replays a fixed sequence of verdicts, wrapping around at the end."""

    def __init__(self, verdicts: Iterable[StatusVerdict]):
        verdicts = [StatusVerdict(v) for v in verdicts]
        if not verdicts:
            raise ValueError("FixedVerdictSource needs at least one verdict")
        self._verdicts = cycle(verdicts)

    def choose(self, oracle: OracleIdentity, event: QueryEvent) -> StatusVerdict:
        return next(self._verdicts)
