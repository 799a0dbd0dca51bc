#!/usr/bin/env python3
"""Tests for the configuration module."""

import logging
import os
from unittest.mock import patch

import pytest

from gasless_relayer.config import ChainConfig, RelayerConfig, RelayPolicyConfig

from conftest import RELAYER_KEY


class TestChainConfig:
    """Tests for ChainConfig."""

    def test_defaults_target_base_mainnet(self):
        config = ChainConfig()

        assert config.rpc_url == "https://mainnet.base.org"
        assert config.chain_id == 8453

    def test_websocket_url_accepted(self):
        assert ChainConfig(rpc_url="wss://base.example/ws").rpc_url == "wss://base.example/ws"

    def test_invalid_rpc_url_scheme(self):
        """Test that invalid RPC URL schemes are rejected."""
        with pytest.raises(ValueError, match="Invalid RPC URL scheme"):
            ChainConfig(rpc_url="ftp://invalid.scheme")

    def test_missing_rpc_url(self):
        with pytest.raises(ValueError, match="RPC URL is required"):
            ChainConfig(rpc_url="")

    def test_non_positive_chain_id(self):
        with pytest.raises(ValueError, match="Chain ID must be positive"):
            ChainConfig(chain_id=0)


class TestRelayPolicyConfig:
    """Tests for RelayPolicyConfig."""

    def test_defaults(self):
        policy = RelayPolicyConfig()

        assert policy.confirmation_timeout == 120
        assert policy.retry_count == 2
        assert policy.serialize_submissions is True
        assert policy.dedupe_window == 1000

    @pytest.mark.parametrize("kwargs, message", [
        ({"confirmation_timeout": 0}, "Confirmation timeout must be positive"),
        ({"confirmation_timeout": 4000}, "Confirmation timeout too long"),
        ({"receipt_poll_interval": 0}, "Receipt poll interval must be positive"),
        ({"confirmation_timeout": 5, "receipt_poll_interval": 10}, "exceeds confirmation timeout"),
        ({"request_timeout": 0}, "Request timeout must be positive"),
        ({"retry_count": -1}, "Retry count must be non-negative"),
        ({"retry_count": 11}, "Retry count too high"),
        ({"dedupe_window": 0}, "Dedupe window must be positive"),
    ])
    def test_invalid_values(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            RelayPolicyConfig(**kwargs)


class TestRelayerConfig:
    """Tests for RelayerConfig."""

    def test_local_mode_requires_key(self):
        with pytest.raises(ValueError, match="Local mode requires RELAYER_PRIVATE_KEY"):
            RelayerConfig(local_mode=True)

    def test_invalid_key_length(self):
        with pytest.raises(ValueError, match="Invalid private key length"):
            RelayerConfig(local_mode=True, local_private_key="0x1234")

    def test_invalid_key_format(self):
        with pytest.raises(ValueError, match="Must be hexadecimal"):
            RelayerConfig(local_mode=True, local_private_key="zz" * 32)

    def test_key_hidden_from_repr(self):
        config = RelayerConfig(local_mode=True, local_private_key=RELAYER_KEY)

        assert RELAYER_KEY not in repr(config)

    def test_rofl_mode_requires_key_id(self):
        with pytest.raises(ValueError, match="RELAYER_KEY_ID"):
            RelayerConfig(key_id="")

    @patch.dict(os.environ, {
        "RPC_URL": "https://sepolia.base.org",
        "CHAIN_ID": "84532",
        "RELAYER_PRIVATE_KEY": RELAYER_KEY,
        "CONFIRMATION_TIMEOUT": "60",
        "RETRY_COUNT": "0",
        "SERIALIZE_SUBMISSIONS": "false",
    }, clear=True)
    def test_from_env_local(self):
        config = RelayerConfig.from_env(local_mode=True)

        assert config.chain.rpc_url == "https://sepolia.base.org"
        assert config.chain.chain_id == 84532
        assert config.local_private_key == RELAYER_KEY
        assert config.policy.confirmation_timeout == 60
        assert config.policy.retry_count == 0
        assert config.policy.serialize_submissions is False

    @patch.dict(os.environ, {"RELAYER_PRIVATE_KEY": RELAYER_KEY}, clear=True)
    def test_from_env_rofl_mode_ignores_local_key(self):
        config = RelayerConfig.from_env(local_mode=False)

        assert config.local_private_key is None
        assert config.key_id == "gasless-relayer"
        assert config.rofl_appd_url == ""

    @patch.dict(os.environ, {"CHAIN_ID": "base"}, clear=True)
    def test_from_env_bad_number(self):
        with pytest.raises(ValueError, match="Invalid numeric configuration value"):
            RelayerConfig.from_env()

    @patch.dict(os.environ, {"SERIALIZE_SUBMISSIONS": "maybe"}, clear=True)
    def test_from_env_bad_boolean(self):
        with pytest.raises(ValueError, match="SERIALIZE_SUBMISSIONS must be a boolean"):
            RelayerConfig.from_env()

    def test_log_config_never_prints_key(self, caplog):
        config = RelayerConfig(local_mode=True, local_private_key=RELAYER_KEY)

        with caplog.at_level(logging.INFO):
            config.log_config()

        assert "[CONFIGURED]" in caplog.text
        assert RELAYER_KEY[2:] not in caplog.text
