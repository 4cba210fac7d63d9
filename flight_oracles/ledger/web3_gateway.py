"""
Web3 ledger gateway — talks to a deployed FlightSuretyApp contract.

Event streaming polls eth_getLogs over block ranges rather than relying on
node-side filters, which development chains drop on restart.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, List, Optional, Sequence

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ProviderConnectionError, TimeExhausted, Web3Exception

from flight_oracles.errors import SubmissionRejected, TransportError
from flight_oracles.ledger.gateway import LedgerEvent
from flight_oracles.models.config import NetworkConfig

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (ProviderConnectionError, TimeExhausted, OSError, asyncio.TimeoutError)


def load_abi(path: str) -> list:
    """Read a contract ABI from a build artifact or a bare ABI file."""
    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        return data["abi"]
    return data


class Web3LedgerGateway:
    """LedgerGateway over an async web3 provider."""

    def __init__(
        self,
        network: NetworkConfig,
        abi: Optional[list] = None,
        poll_interval_seconds: float = 1.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        if network.app_address is None:
            raise ValueError("Network config has no contract address (appAddress)")
        if abi is None:
            if network.abi_path is None:
                raise ValueError("Network config has no ABI path (abiPath)")
            abi = load_abi(network.abi_path)

        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(network.url))
        self.contract = self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(network.app_address),
            abi=abi,
        )
        self.poll_interval_seconds = poll_interval_seconds

    async def accounts(self) -> List[str]:
        try:
            return list(await self.w3.eth.accounts)
        except _CONNECTION_ERRORS as e:
            raise TransportError(f"Could not list accounts: {e}") from e
        except Web3Exception as e:
            raise TransportError(f"Account listing failed: {e}") from e

    async def registration_fee(self) -> int:
        try:
            return int(await self.contract.functions.REGISTRATION_FEE().call())
        except _CONNECTION_ERRORS as e:
            raise TransportError(f"Could not read registration fee: {e}") from e
        except Web3Exception as e:
            raise SubmissionRejected(f"REGISTRATION_FEE call failed: {e}") from e

    async def register_oracle(
        self, account: str, fee: int, gas_limit: Optional[int] = None
    ) -> str:
        tx: dict = {"from": account, "value": fee}
        if gas_limit is not None:
            tx["gas"] = gas_limit
        return await self._transact(self.contract.functions.registerOracle(), tx)

    async def get_assigned_indexes(self, account: str) -> Sequence[Any]:
        try:
            return list(
                await self.contract.functions.getMyIndexes().call({"from": account})
            )
        except _CONNECTION_ERRORS as e:
            raise TransportError(f"Could not read indexes for {account}: {e}") from e
        except Web3Exception as e:
            raise SubmissionRejected(f"getMyIndexes failed for {account}: {e}") from e

    async def subscribe(
        self, event_name: str, from_block: int = 0
    ) -> AsyncIterator[LedgerEvent]:
        event_type = getattr(self.contract.events, event_name)
        next_block = from_block
        while True:
            try:
                latest = await self.w3.eth.block_number
                logs = []
                if latest >= next_block:
                    logs = await event_type.get_logs(from_block=next_block, to_block=latest)
            except _CONNECTION_ERRORS as e:
                raise TransportError(f"{event_name} subscription failed: {e}") from e
            except Web3Exception as e:
                raise TransportError(f"{event_name} log query failed: {e}") from e

            for log in logs:
                yield LedgerEvent(
                    name=event_name,
                    args=dict(log["args"]),
                    block_number=log["blockNumber"],
                    tx_hash=AsyncWeb3.to_hex(log["transactionHash"]),
                )
            if latest >= next_block:
                next_block = latest + 1
            await asyncio.sleep(self.poll_interval_seconds)

    async def submit_response(
        self,
        selector_index: int,
        airline: str,
        flight: str,
        timestamp: int,
        verdict: int,
        from_account: str,
        gas_limit: int,
    ) -> str:
        call = self.contract.functions.submitOracleResponse(
            selector_index, airline, flight, timestamp, verdict
        )
        return await self._transact(call, {"from": from_account, "gas": gas_limit})

    async def _transact(self, call, tx: dict) -> str:
        """Send a transaction and wait for it to be mined."""
        try:
            tx_hash = await call.transact(tx)
            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        except _CONNECTION_ERRORS as e:
            raise TransportError(f"Transaction from {tx['from']} not sent: {e}") from e
        except Web3Exception as e:
            raise SubmissionRejected(str(e)) from e

        tx_hex = AsyncWeb3.to_hex(tx_hash)
        if receipt["status"] == 0:
            raise SubmissionRejected(f"Transaction {tx_hex} reverted", tx_hash=tx_hex)
        logger.debug("Transaction %s mined in block %s", tx_hex, receipt["blockNumber"])
        return tx_hex
