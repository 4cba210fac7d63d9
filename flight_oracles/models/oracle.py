"""Oracle identities and the registry that holds them."""

from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from flight_oracles.errors import RegistryFrozenError
from flight_oracles.models.query import canonical_index


class OracleIdentity(BaseModel):
    """A locally-controlled oracle account and the indexes the ledger assigned it."""

    model_config = ConfigDict(frozen=True)

    address: str
    indexes: Tuple[int, ...]                # Typically 3, each in 0..9
    registered: bool = True

    @field_validator("indexes", mode="before")
    @classmethod
    def _canonical_indexes(cls, value: Any) -> Tuple[int, ...]:
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"Index set must be a list, got {type(value).__name__}")
        indexes = tuple(canonical_index(v) for v in value)
        if not indexes:
            raise ValueError("An oracle must hold at least one index")
        return indexes

    def holds(self, selector_index: int) -> bool:
        return selector_index in self.indexes


class OracleRegistry:
    """
    Pool of oracle identities, keyed by address.

    Written only while the pool is bootstrapped, then frozen. After freeze()
    the registry is safe to share between concurrent dispatch tasks.
    """

    def __init__(self):
        self._oracles: Dict[str, OracleIdentity] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(self, identity: OracleIdentity) -> None:
        """Add an identity. Only allowed before freeze()."""
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot add oracle {identity.address}: registry is frozen"
            )
        if identity.address in self._oracles:
            raise ValueError(f"Oracle {identity.address} is already registered")
        self._oracles[identity.address] = identity

    def freeze(self) -> "OracleRegistry":
        self._frozen = True
        return self

    def get(self, address: str) -> Optional[OracleIdentity]:
        return self._oracles.get(address)

    def identities(self) -> List[OracleIdentity]:
        return list(self._oracles.values())

    def snapshot(self) -> List[dict]:
        """Serializable view of the pool."""
        return [o.model_dump(mode="json") for o in self._oracles.values()]

    def __contains__(self, address: object) -> bool:
        return address in self._oracles

    def __iter__(self) -> Iterator[OracleIdentity]:
        return iter(list(self._oracles.values()))

    def __len__(self) -> int:
        return len(self._oracles)
