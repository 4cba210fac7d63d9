"""
Query Matcher — which local oracles may answer a query.

Both the selector index and the stored indexes are canonicalized on model
construction, so membership here is exact equality on one representation.
"""

from typing import Iterable, List

from flight_oracles.models.oracle import OracleIdentity
from flight_oracles.models.query import QueryEvent


def match(event: QueryEvent, registry: Iterable[OracleIdentity]) -> List[OracleIdentity]:
    """Return every oracle holding the event's selector index. May be empty."""
    return [oracle for oracle in registry if oracle.holds(event.selector_index)]
