"""Runtime configuration for the relay, read from the environment."""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address

from storage_relayer.shared.constants import RelayConstants
from storage_relayer.shared.exceptions import ConfigurationException

_SECRET_FIELDS = {"dest_private_key"}


def _require_address(value: Optional[str], name: str) -> str:
    if not value:
        raise ConfigurationException(f"{name} is not set")
    if not is_address(value):
        raise ConfigurationException(
            f"Invalid {name}: {value} is not a valid address"
        )
    return to_checksum_address(value)


def _optional_int(value: Optional[str], name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value, 0)
    except ValueError:
        raise ConfigurationException(f"Invalid {name}: {value!r}")


@dataclass(frozen=True)
class RelayConfig:
    """
    Process-start configuration.

    Attributes:
        eth_rpc_url: Primary source chain RPC (headers, proofs, events)
        anchor_rpc_url: Secondary RPC used only for the block hash anchor
        source_contract: Contract emitting TreeChanged and holding the slot
        latest_root_slot: Storage slot index to prove
        poll_interval: Seconds between finalized-block polls
        prover_url: Remote proving service; None selects local execution
        dest_rpc_url: Destination chain RPC
        dest_private_key: Signing key for destination transactions
        dest_verifier: Destination verifier contract
        dest_function: Verifier function signature
        dest_chain_id: Destination chain id (queried from the RPC when None)
    """

    eth_rpc_url: str
    source_contract: str
    latest_root_slot: int = RelayConstants.DEFAULT_LATEST_ROOT_SLOT
    poll_interval: float = RelayConstants.DEFAULT_POLL_INTERVAL
    anchor_rpc_url: Optional[str] = None
    prover_url: Optional[str] = None
    dest_rpc_url: Optional[str] = None
    dest_private_key: Optional[str] = None
    dest_verifier: Optional[str] = None
    dest_function: str = RelayConstants.DEFAULT_VERIFIER_FUNCTION
    dest_chain_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0 <= self.latest_root_slot < 2**256:
            raise ConfigurationException(
                f"Slot out of range: {self.latest_root_slot}"
            )
        if self.poll_interval <= 0:
            raise ConfigurationException(
                f"Poll interval must be positive: {self.poll_interval}"
            )

    def __repr__(self) -> str:
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _SECRET_FIELDS and value:
                value = "***"
            parts.append(f"{f.name}={value!r}")
        return f"RelayConfig({', '.join(parts)})"

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Build the configuration from environment variables (and .env)."""
        load_dotenv()

        eth_rpc_url = os.getenv("ETH_RPC_URL")
        if not eth_rpc_url:
            raise ConfigurationException("ETH_RPC_URL is not set")

        slot = _optional_int(os.getenv("LATEST_ROOT_SLOT"), "LATEST_ROOT_SLOT")
        interval = os.getenv("POLL_INTERVAL")
        try:
            poll_interval = (
                float(interval)
                if interval
                else RelayConstants.DEFAULT_POLL_INTERVAL
            )
        except ValueError:
            raise ConfigurationException(
                f"Invalid POLL_INTERVAL: {interval!r}"
            )

        dest_verifier = os.getenv("DEST_VERIFIER") or None
        return cls(
            eth_rpc_url=eth_rpc_url,
            source_contract=_require_address(
                os.getenv("SOURCE_CONTRACT"), "SOURCE_CONTRACT"
            ),
            latest_root_slot=(
                slot
                if slot is not None
                else RelayConstants.DEFAULT_LATEST_ROOT_SLOT
            ),
            poll_interval=poll_interval,
            anchor_rpc_url=os.getenv("ETH_ANCHOR_RPC_URL") or None,
            prover_url=os.getenv("PROVER_URL") or None,
            dest_rpc_url=os.getenv("DEST_RPC_URL") or None,
            dest_private_key=os.getenv("DEST_PRIVATE_KEY") or None,
            dest_verifier=(
                _require_address(dest_verifier, "DEST_VERIFIER")
                if dest_verifier
                else None
            ),
            dest_function=os.getenv("DEST_FUNCTION")
            or RelayConstants.DEFAULT_VERIFIER_FUNCTION,
            dest_chain_id=_optional_int(
                os.getenv("DEST_CHAIN_ID"), "DEST_CHAIN_ID"
            ),
        )

    def with_overrides(self, **overrides: Any) -> "RelayConfig":
        """Return a copy with non-None overrides applied (CLI flags)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "source_contract" in changes:
            changes["source_contract"] = _require_address(
                changes["source_contract"], "source_contract"
            )
        if "dest_verifier" in changes:
            changes["dest_verifier"] = _require_address(
                changes["dest_verifier"], "dest_verifier"
            )
        return replace(self, **changes)

    def require_destination(self) -> None:
        """Check the destination-chain settings needed for publishing."""
        missing = [
            name
            for name in ("dest_rpc_url", "dest_private_key", "dest_verifier")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationException(
                "Missing destination settings: "
                + ", ".join(name.upper() for name in missing)
            )
