"""
Oracle server entry point.

Runs the oracle node and the status API in one event loop. A lost ledger
connection exits non-zero so the supervisor restarts the process.

With --simulate the node runs against the in-memory ledger, which opens a
request for one of the demo flights every few seconds.
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from itertools import cycle
from typing import Optional

import uvicorn

from flight_oracles.api.app import create_app
from flight_oracles.config import load_config
from flight_oracles.errors import OracleNetworkError
from flight_oracles.ledger.memory import InMemoryLedger
from flight_oracles.ledger.web3_gateway import Web3LedgerGateway
from flight_oracles.models.config import OracleNodeConfig
from flight_oracles.node.service import OracleNode

logger = logging.getLogger("flight_oracles")

DEMO_FLIGHTS = ["ER-2493", "IB-9421", "RY-5321", "AI-8327"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flight-oracles",
        description="Register a pool of flight-status oracles and answer queries",
    )
    parser.add_argument("--config", help="Network config JSON (dapp config.json layout)")
    parser.add_argument("--network", default="localhost", help="Network name in the config")
    parser.add_argument("--pool-size", type=int, help="Number of oracles to register")
    parser.add_argument("--account-offset", type=int, help="Accounts reserved before the oracle pool")
    parser.add_argument("--from-block", type=int, help="First block to replay OracleRequest events from")
    parser.add_argument("--seed", type=int, help="Seed for random verdicts")
    parser.add_argument("--simulate", action="store_true", help="Use the in-memory ledger")
    parser.add_argument("--request-interval", type=float, default=5.0,
                        help="Seconds between simulated flight-status requests")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--log-level", default="INFO")
    return parser


async def simulate_requests(
    ledger: InMemoryLedger,
    interval: float,
    stop_event: asyncio.Event,
) -> None:
    """Open flight-status requests on the in-memory ledger, as the dapp would."""
    accounts = await ledger.accounts()
    airlines = accounts[1:1 + len(DEMO_FLIGHTS)]
    for airline, flight in cycle(zip(airlines, DEMO_FLIGHTS)):
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
            return
        except asyncio.TimeoutError:
            pass
        event = ledger.fetch_flight_status(airline, flight, int(time.time()))
        logger.info("Requested status of %s (index %s)", flight, event.args["index"])


async def serve(
    config: OracleNodeConfig,
    host: str,
    port: int,
    simulate: bool = False,
    request_interval: float = 5.0,
    stop_event: Optional[asyncio.Event] = None,
) -> OracleNode:
    """Run the node and the status API until stopped. Returns the finished node."""
    if simulate:
        gateway = InMemoryLedger(seed=config.verdict_seed)
    else:
        gateway = Web3LedgerGateway(
            config.network, poll_interval_seconds=config.poll_interval_seconds
        )
    node = OracleNode(gateway, config)
    server = uvicorn.Server(uvicorn.Config(
        create_app(node), host=host, port=port, log_config=None,
    ))

    if stop_event is None:
        stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    api_task = asyncio.create_task(server.serve())
    # uvicorn takes over SIGINT/SIGTERM while serving
    api_task.add_done_callback(lambda _: stop_event.set())
    background = []
    if simulate:
        background.append(asyncio.create_task(
            simulate_requests(gateway, request_interval, stop_event)
        ))
    try:
        await node.run(stop_event)
    finally:
        stop_event.set()
        server.should_exit = True
        await asyncio.gather(api_task, *background)
    return node


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config(
        args.config,
        network=args.network,
        pool_size=args.pool_size,
        account_offset=args.account_offset,
        from_block=args.from_block,
        verdict_seed=args.seed,
    )
    try:
        asyncio.run(serve(
            config, args.host, args.port,
            simulate=args.simulate, request_interval=args.request_interval,
        ))
    except OracleNetworkError as e:
        logger.error("Oracle node failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
