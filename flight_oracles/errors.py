"""Error taxonomy for the oracle node."""


class OracleNetworkError(Exception):
    """Base class for oracle node failures."""
    pass


class RegistrationError(OracleNetworkError):
    """Raised when the oracle pool cannot be bootstrapped."""
    pass


class RegistryFrozenError(OracleNetworkError):
    """Raised when an identity is added after bootstrap has completed."""
    pass


class SubmissionRejected(OracleNetworkError):
    """Raised by a ledger gateway when a transaction is refused."""

    def __init__(self, reason: str, tx_hash: str = None):
        super().__init__(reason)
        self.reason = reason
        self.tx_hash = tx_hash


class TransportError(OracleNetworkError):
    """Raised when the connection to the ledger is lost."""
    pass
