#!/usr/bin/env python3
"""Configuration management for the Gasless Relayer.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables with sensible defaults
where appropriate. The relayer key is never part of the printed config.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

# Get logger for this module
logger = logging.getLogger(__name__)

BASE_MAINNET_RPC_URL = "https://mainnet.base.org"
BASE_MAINNET_CHAIN_ID = 8453


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    match raw.strip().lower():
        case "1" | "true" | "yes" | "on":
            return True
        case "0" | "false" | "no" | "off":
            return False
        case _:
            raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for the chain the relayer broadcasts to.

    Attributes:
        rpc_url: HTTP(S) or WS(S) RPC endpoint
        chain_id: Network identifier stamped on every relayed transaction
    """

    rpc_url: str = BASE_MAINNET_RPC_URL
    chain_id: int = BASE_MAINNET_CHAIN_ID

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.rpc_url:
            raise ValueError("RPC URL is required (RPC_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https', 'ws', 'wss'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. "
                "Expected http, https, ws, or wss"
            )

        if self.chain_id <= 0:
            raise ValueError(f"Chain ID must be positive, got {self.chain_id}")


@dataclass(frozen=True, slots=True)
class RelayPolicyConfig:
    """Timeouts, retries and concurrency settings for the relay pipeline."""
    confirmation_timeout: int = 120  # seconds to wait for inclusion
    receipt_poll_interval: float = 1.0  # seconds between receipt polls
    request_timeout: int = 30  # HTTP request timeout in seconds
    retry_count: int = 2  # rebuild attempts after a nonce collision
    serialize_submissions: bool = True  # single-flight lock around read-build-send
    dedupe_window: int = 1000  # recent payloads remembered for repeat detection

    def __post_init__(self) -> None:
        """Validate relay policy configuration."""
        if self.confirmation_timeout <= 0:
            raise ValueError(f"Confirmation timeout must be positive, got {self.confirmation_timeout}")
        if self.confirmation_timeout > 3600:
            raise ValueError(f"Confirmation timeout too long (max 3600s), got {self.confirmation_timeout}")

        if self.receipt_poll_interval <= 0:
            raise ValueError(f"Receipt poll interval must be positive, got {self.receipt_poll_interval}")
        if self.receipt_poll_interval > self.confirmation_timeout:
            raise ValueError(
                f"Receipt poll interval ({self.receipt_poll_interval}s) exceeds "
                f"confirmation timeout ({self.confirmation_timeout}s)"
            )

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.retry_count < 0:
            raise ValueError(f"Retry count must be non-negative, got {self.retry_count}")
        if self.retry_count > 10:
            raise ValueError(f"Retry count too high (max 10), got {self.retry_count}")

        if self.dedupe_window <= 0:
            raise ValueError(f"Dedupe window must be positive, got {self.dedupe_window}")


@dataclass(frozen=True, slots=True)
class RelayerConfig:
    """Main configuration for the Gasless Relayer.

    Attributes:
        chain: Target chain configuration
        policy: Relay pipeline settings
        local_mode: Use RELAYER_PRIVATE_KEY instead of the ROFL key store
        local_private_key: Relayer key for local mode (hidden from repr)
        key_id: Key identifier in the ROFL key store
        rofl_appd_url: ROFL appd URL or socket path ('' for the default socket)
    """

    chain: ChainConfig = field(default_factory=ChainConfig)
    policy: RelayPolicyConfig = field(default_factory=RelayPolicyConfig)
    local_mode: bool = False
    local_private_key: str | None = field(default=None, repr=False)
    key_id: str = "gasless-relayer"
    rofl_appd_url: str = ""

    def __post_init__(self) -> None:
        """Validate relayer configuration."""
        if self.local_mode and not self.local_private_key:
            raise ValueError(
                "Local mode requires RELAYER_PRIVATE_KEY environment variable"
            )

        if self.local_private_key:
            # Should be 64 hex chars, optionally with 0x prefix
            key = self.local_private_key.removeprefix('0x')

            if len(key) != 64:
                raise ValueError(
                    f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
                )

            try:
                int(key, 16)
            except ValueError:
                raise ValueError(
                    "Invalid private key format. Must be hexadecimal"
                ) from None

        if not self.local_mode and not self.key_id:
            raise ValueError("RELAYER_KEY_ID must not be empty outside local mode")

    @classmethod
    def from_env(cls, local_mode: bool = False) -> "RelayerConfig":
        """Load configuration from environment variables.

        Args:
            local_mode: Sign with RELAYER_PRIVATE_KEY instead of the ROFL key store

        Returns:
            RelayerConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        try:
            chain_id = int(os.environ.get("CHAIN_ID", str(BASE_MAINNET_CHAIN_ID)))
            confirmation_timeout = int(os.environ.get("CONFIRMATION_TIMEOUT", "120"))
            receipt_poll_interval = float(os.environ.get("RECEIPT_POLL_INTERVAL", "1.0"))
            request_timeout = int(os.environ.get("REQUEST_TIMEOUT", "30"))
            retry_count = int(os.environ.get("RETRY_COUNT", "2"))
            dedupe_window = int(os.environ.get("DEDUPE_WINDOW", "1000"))
        except ValueError as e:
            raise ValueError(f"Invalid numeric configuration value: {e}") from None

        chain_config = ChainConfig(
            rpc_url=os.environ.get("RPC_URL", BASE_MAINNET_RPC_URL),
            chain_id=chain_id,
        )

        policy_config = RelayPolicyConfig(
            confirmation_timeout=confirmation_timeout,
            receipt_poll_interval=receipt_poll_interval,
            request_timeout=request_timeout,
            retry_count=retry_count,
            serialize_submissions=_env_bool("SERIALIZE_SUBMISSIONS", True),
            dedupe_window=dedupe_window,
        )

        local_private_key = os.environ.get("RELAYER_PRIVATE_KEY") if local_mode else None

        return cls(
            chain=chain_config,
            policy=policy_config,
            local_mode=local_mode,
            local_private_key=local_private_key,
            key_id=os.environ.get("RELAYER_KEY_ID", "gasless-relayer"),
            rofl_appd_url=os.environ.get("ROFL_APPD_URL", ""),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Gasless Relayer Configuration")
        logger.info("=" * 60)

        logger.info("Chain:")
        logger.info(f"  RPC URL: {self.chain.rpc_url}")
        logger.info(f"  Chain ID: {self.chain.chain_id}")

        logger.info("Relay Policy:")
        logger.info(f"  Confirmation Timeout: {self.policy.confirmation_timeout} seconds")
        logger.info(f"  Receipt Poll Interval: {self.policy.receipt_poll_interval} seconds")
        logger.info(f"  Request Timeout: {self.policy.request_timeout} seconds")
        logger.info(f"  Retry Count: {self.policy.retry_count}")
        logger.info(f"  Serialize Submissions: {self.policy.serialize_submissions}")
        logger.info(f"  Dedupe Window: {self.policy.dedupe_window}")

        logger.info("Key Material:")
        logger.info(f"  Mode: {'LOCAL' if self.local_mode else 'ROFL'}")
        if self.local_mode:
            logger.info("  Local Key: [CONFIGURED]")
        else:
            logger.info(f"  Key ID: {self.key_id}")

        logger.info("=" * 60)
