"""Flight oracle data models."""

from flight_oracles.models.config import NetworkConfig, OracleNodeConfig
from flight_oracles.models.oracle import OracleIdentity, OracleRegistry
from flight_oracles.models.query import QueryEvent, StatusVerdict, canonical_index
from flight_oracles.models.submission import SubmissionAttempt, SubmissionOutcome

__all__ = [
    "NetworkConfig",
    "OracleIdentity",
    "OracleNodeConfig",
    "OracleRegistry",
    "QueryEvent",
    "StatusVerdict",
    "SubmissionAttempt",
    "SubmissionOutcome",
    "canonical_index",
]
