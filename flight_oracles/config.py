"""
Configuration loading.

The config file is the dapp's network map: one block per network name holding
the ledger URL and contract address. Node settings sit in an optional "oracle"
block at the top level and can be overridden per run.

    {
      "localhost": {"url": "http://localhost:8545", "appAddress": "0x..."},
      "oracle": {"pool_size": 20, "account_offset": 10}
    }
"""

import json
from pathlib import Path
from typing import Any, Optional

from flight_oracles.models.config import NetworkConfig, OracleNodeConfig


def load_config(
    path: Optional[str] = None,
    network: str = "localhost",
    **overrides: Any,
) -> OracleNodeConfig:
    """Build the node config from a file, then apply non-None overrides."""
    data: dict = {}
    if path is not None:
        data = json.loads(Path(path).read_text())

    settings = dict(data.get("oracle", {}))
    if path is not None:
        if network not in data:
            raise KeyError(f"Network {network!r} not found in {path}")
        network_data = dict(data[network])
        abi_path = network_data.get("abiPath", network_data.get("abi_path"))
        if abi_path is not None and not Path(abi_path).is_absolute():
            network_data["abiPath"] = str(Path(path).parent / abi_path)
            network_data.pop("abi_path", None)
        settings["network"] = NetworkConfig.model_validate(network_data)

    settings.update({k: v for k, v in overrides.items() if v is not None})
    return OracleNodeConfig.model_validate(settings)
