"""
Oracle Registry bootstrap — registers the local oracle pool at startup.

Behavioral Contract:
- Registrations are sent one at a time, to stay under per-block gas limits.
- The index read-back for one oracle overlaps the next oracle's registration.
- A single failed registration is logged and skipped; a short pool is a warning.
- No registered oracle at all, a fee mismatch, or too few accounts is fatal.
  So is a ledger refusing the fee or account read.
- The registry is frozen before it is returned.
"""

import asyncio
import logging
from typing import List, Optional

from pydantic import ValidationError

from flight_oracles.errors import RegistrationError, SubmissionRejected
from flight_oracles.ledger.gateway import LedgerGateway
from flight_oracles.models.oracle import OracleIdentity, OracleRegistry

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_OFFSET = 10


async def bootstrap(
    pool_size: int,
    gateway: LedgerGateway,
    account_offset: int = DEFAULT_ACCOUNT_OFFSET,
    expected_fee: Optional[int] = None,
    gas_limit: Optional[int] = None,
) -> OracleRegistry:
    """Register `pool_size` oracles and return the frozen registry."""
    if pool_size < 1:
        raise RegistrationError(f"Pool size must be at least 1, got {pool_size}")

    try:
        fee = await gateway.registration_fee()
        accounts = await gateway.accounts()
    except SubmissionRejected as e:
        raise RegistrationError(f"Ledger refused a bootstrap read: {e.reason}") from e

    if fee <= 0:
        raise RegistrationError(f"Ledger reported an invalid registration fee: {fee}")
    if expected_fee is not None and fee != expected_fee:
        raise RegistrationError(
            f"Registration fee mismatch: ledger wants {fee}, expected {expected_fee}"
        )

    candidates = accounts[account_offset:account_offset + pool_size]
    if len(candidates) < pool_size:
        raise RegistrationError(
            f"Account pool exhausted: {len(accounts)} accounts, "
            f"{account_offset} reserved, {pool_size} oracles requested"
        )

    read_backs: List[asyncio.Task] = []
    try:
        for account in candidates:
            try:
                await gateway.register_oracle(account, fee, gas_limit)
            except SubmissionRejected as e:
                logger.warning("Oracle registration failed for %s: %s", account, e)
                continue
            read_backs.append(asyncio.create_task(_read_back(gateway, account)))

        identities = await asyncio.gather(*read_backs)
    except BaseException:
        for task in read_backs:
            task.cancel()
        raise

    registry = OracleRegistry()
    for identity in identities:
        if identity is not None:
            registry.add(identity)

    if len(registry) == 0:
        raise RegistrationError(f"None of {pool_size} oracle registrations succeeded")
    if len(registry) < pool_size:
        logger.warning(
            "Oracle pool is short: %d of %d registered", len(registry), pool_size
        )
    else:
        logger.info("Registered %d oracles", len(registry))
    return registry.freeze()


async def _read_back(gateway: LedgerGateway, account: str) -> Optional[OracleIdentity]:
    """Fetch the indexes the ledger assigned to a freshly registered oracle."""
    try:
        indexes = await gateway.get_assigned_indexes(account)
        identity = OracleIdentity(address=account, indexes=indexes, registered=True)
    except SubmissionRejected as e:
        logger.warning("Could not read indexes for oracle %s: %s", account, e)
        return None
    except ValidationError as e:
        logger.warning("Ledger returned unusable indexes for oracle %s: %s", account, e)
        return None

    logger.debug("Oracle %s holds indexes %s", account, list(identity.indexes))
    return identity
