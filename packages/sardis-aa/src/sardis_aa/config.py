"""
Configuration management for sardis-aa.

Provides centralized configuration for:
- EntryPoint address and chain ID
- Receipt polling (retry count and interval)
- Fee bidding floor
- Bundler RPC timeout
- Logging configuration
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# EntryPoint v0.6, same address on every supported chain
ENTRYPOINT_V06_ADDRESS = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"

DEFAULT_TX_MAX_RETRIES = 5
DEFAULT_TX_RETRY_INTERVAL_MS = 2000
DEFAULT_MIN_PRIORITY_FEE_PER_BID = 1_000_000_000  # 1 gwei

CHAIN_ID_MAP: Dict[str, int] = {
    "ethereum": 1,
    "base": 8453,
    "polygon": 137,
    "arbitrum": 42161,
    "optimism": 10,
    "ethereum_sepolia": 11155111,
    "base_sepolia": 84532,
    "polygon_amoy": 80002,
    "arbitrum_sepolia": 421614,
    "optimism_sepolia": 11155420,
}


@dataclass
class LoggingConfig:
    """Configuration for user operation logging."""
    operation_level: str = "INFO"
    error_level: str = "ERROR"

    # Partial masking for privacy
    mask_addresses: bool = False
    log_fee_bids: bool = True


@dataclass
class ProviderConfig:
    """
    Configuration for a SmartAccountProvider.

    Supports loading from environment variables with prefix SARDIS_AA_.
    """
    entry_point_address: str = ENTRYPOINT_V06_ADDRESS
    chain_id: int = CHAIN_ID_MAP["base_sepolia"]

    # Receipt polling
    tx_max_retries: int = DEFAULT_TX_MAX_RETRIES
    tx_retry_interval_ms: int = DEFAULT_TX_RETRY_INTERVAL_MS

    # Fee bidding
    min_priority_fee_per_bid: int = DEFAULT_MIN_PRIORITY_FEE_PER_BID

    rpc_timeout_seconds: float = 30.0
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        if self.tx_max_retries < 0:
            raise ValueError("tx_max_retries must be >= 0")
        if self.tx_retry_interval_ms < 0:
            raise ValueError("tx_retry_interval_ms must be >= 0")
        if self.min_priority_fee_per_bid < 0:
            raise ValueError("min_priority_fee_per_bid must be >= 0")

    @property
    def tx_retry_interval_seconds(self) -> float:
        return self.tx_retry_interval_ms / 1000

    @classmethod
    def from_env(cls, **overrides: Any) -> "ProviderConfig":
        """Build a config from SARDIS_AA_* variables; keyword overrides win."""
        values: Dict[str, Any] = {}

        entry_point = _get_env("ENTRY_POINT_ADDRESS")
        if entry_point:
            values["entry_point_address"] = entry_point

        chain = _get_env("CHAIN_ID")
        if chain:
            values["chain_id"] = resolve_chain_id(chain)

        for key, env_key, cast in (
            ("tx_max_retries", "TX_MAX_RETRIES", int),
            ("tx_retry_interval_ms", "TX_RETRY_INTERVAL_MS", int),
            ("min_priority_fee_per_bid", "MIN_PRIORITY_FEE_PER_BID", int),
            ("rpc_timeout_seconds", "RPC_TIMEOUT_SECONDS", float),
        ):
            raw = _get_env(env_key)
            if raw is not None:
                values[key] = cast(raw)

        values.update(overrides)
        return cls(**values)


def _get_env(key: str, default: Any = None, prefix: str = "SARDIS_AA_") -> Any:
    """Get environment variable with prefix."""
    return os.getenv(f"{prefix}{key}", default)


def resolve_chain_id(chain: Union[str, int]) -> int:
    """Accept a chain name, a decimal/hex string, or an int."""
    if isinstance(chain, int):
        return chain
    if chain in CHAIN_ID_MAP:
        return CHAIN_ID_MAP[chain]
    try:
        return int(chain, 0)
    except ValueError:
        raise ValueError(f"Unknown chain: {chain}") from None


# Global configuration instance
_global_config: Optional[ProviderConfig] = None


def get_config() -> ProviderConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = ProviderConfig.from_env()
    return _global_config


def set_config(config: Optional[ProviderConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _global_config
    _global_config = config
