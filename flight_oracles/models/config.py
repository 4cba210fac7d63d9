"""Oracle node configuration."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NetworkConfig(BaseModel):
    """Where the ledger lives and which contract to talk to."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = "http://localhost:8545"
    app_address: Optional[str] = Field(default=None, alias="appAddress")
    abi_path: Optional[str] = Field(default=None, alias="abiPath")


class OracleNodeConfig(BaseModel):
    """Configuration for one oracle node process."""

    network: NetworkConfig = NetworkConfig()
    pool_size: int = Field(ge=1, default=20)
    account_offset: int = Field(ge=0, default=10)   # Accounts reserved for owner/airlines/passengers
    from_block: int = Field(ge=0, default=0)
    gas_limit: int = Field(gt=0, default=200_000)
    registration_gas_limit: int = Field(gt=0, default=3_000_000)
    expected_registration_fee: Optional[int] = None  # Wei; checked against the ledger when set
    submission_timeout_seconds: Optional[float] = Field(gt=0, default=None)
    max_submission_retries: int = Field(ge=0, default=0)
    poll_interval_seconds: float = Field(gt=0, default=1.0)
    verdict_seed: Optional[int] = None
    journal_size: int = Field(ge=1, default=1000)
