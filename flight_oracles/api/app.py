"""
Flight Oracles API — FastAPI status endpoints.

Read-only views for operators:
- Health acknowledgement for the dapp
- Node status and counters
- Registered oracle pool
- Recent submission attempts
"""

from typing import Optional

from fastapi import FastAPI, HTTPException

from flight_oracles.journal.store import SubmissionJournal
from flight_oracles.node.service import OracleNode

API_MESSAGE = "An API for use with your Dapp!"


def create_app(node: Optional[OracleNode] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Flight Oracles API",
        description="Flight-status oracle node",
        version="0.1.0",
    )
    app.state.node = node

    @app.get("/api")
    def acknowledge():
        """Static acknowledgement used by the dapp as a health check."""
        return {"message": API_MESSAGE}

    @app.get("/status")
    def node_status():
        """Node lifecycle state and counters."""
        if node is None:
            return {"state": "detached"}
        return node.status()

    @app.get("/oracles")
    def list_oracles():
        """Registered oracle pool and assigned indexes."""
        if node is None or node.registry is None:
            return []
        return node.registry.snapshot()

    @app.get("/oracles/{address}")
    def get_oracle(address: str):
        if node is None or node.registry is None:
            raise HTTPException(404, "Oracle not found")
        oracle = node.registry.get(address)
        if oracle is None:
            raise HTTPException(404, "Oracle not found")
        journal: SubmissionJournal = node.journal
        return {
            "oracle": oracle.model_dump(mode="json"),
            "submissions": [a.summary() for a in journal.query_by_oracle(address)],
        }

    @app.get("/submissions")
    def recent_submissions(limit: int = 50, flight: Optional[str] = None):
        """Recent submission attempts, newest first."""
        if node is None:
            return []
        if flight is not None:
            attempts = list(reversed(node.journal.query_by_flight(flight)))[:limit]
        else:
            attempts = node.journal.query_recent(limit=limit)
        return [a.summary() for a in attempts]

    return app
