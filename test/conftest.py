"""Shared fixtures for the Gasless Relayer test suite."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import rlp
from eth_account import Account
from web3 import Web3

from gasless_relayer.config import RelayerConfig, RelayPolicyConfig

RELAYER_KEY = "0x" + "1" * 64
CLIENT_KEY = "0x" + "2" * 64
RECIPIENT = Web3.to_checksum_address("0x742d35cc6634c0532925a3b844bc9e7595f0beb7")
TOKEN = Web3.to_checksum_address("0x833589fcd6edb6e08f4c7c32d4f71b54bda02913")

GAS_PRICE = 2_000_000_000  # 2 gwei
GAS_ESTIMATE = 21_000
RELAYER_NONCE = 7
RELAYED_TX_HASH = "0x" + "ab" * 32

# transfer(address,uint256) to RECIPIENT for 1_000_000 units
ERC20_TRANSFER_DATA = bytes.fromhex(
    "a9059cbb"
    + "000000000000000000000000742d35cc6634c0532925a3b844bc9e7595f0beb7"
    + "00000000000000000000000000000000000000000000000000000000000f4240"
)


def sign_legacy(to=RECIPIENT, value=1, data=b"", nonce=0, key=CLIENT_KEY, chain_id=8453) -> str:
    """Sign a legacy transaction as the client and return its 0x hex."""
    tx = {
        "value": value,
        "data": data,
        "gas": 100_000,
        "gasPrice": 1_000_000_000,
        "nonce": nonce,
        "chainId": chain_id,
    }
    if to is not None:
        tx["to"] = to
    return Web3.to_hex(Account.sign_transaction(tx, key).raw_transaction)


def sign_eip1559(to=RECIPIENT, value=1, data=b"", nonce=0, key=CLIENT_KEY, chain_id=8453) -> str:
    """Sign a type 2 transaction as the client and return its 0x hex."""
    tx = {
        "type": 2,
        "to": to,
        "value": value,
        "data": data,
        "gas": 100_000,
        "maxFeePerGas": 3_000_000_000,
        "maxPriorityFeePerGas": 1_000_000_000,
        "nonce": nonce,
        "chainId": chain_id,
    }
    return Web3.to_hex(Account.sign_transaction(tx, key).raw_transaction)


def unsigned_legacy(to=RECIPIENT, value=1, data=b"") -> str:
    """Serialize a legacy transaction without signature fields."""
    fields = [0, 1_000_000_000, 21_000, Web3.to_bytes(hexstr=to), value, data]
    return Web3.to_hex(rlp.encode(fields))


def unsigned_eip1559(to=RECIPIENT, value=1, data=b"") -> str:
    """Serialize a type 2 transaction without signature fields."""
    fields = [8453, 0, 1, 2, 21_000, Web3.to_bytes(hexstr=to), value, data, []]
    return Web3.to_hex(b"\x02" + rlp.encode(fields))


@pytest.fixture
def client_address() -> str:
    return Account.from_key(CLIENT_KEY).address


@pytest.fixture
def relayer_address() -> str:
    return Account.from_key(RELAYER_KEY).address


@pytest.fixture
def relayer_config() -> RelayerConfig:
    return RelayerConfig(
        policy=RelayPolicyConfig(confirmation_timeout=5, receipt_poll_interval=0.1),
        local_mode=True,
        local_private_key=RELAYER_KEY,
    )


@pytest.fixture
def chain_client(relayer_address):
    """Mock ChainClient with a healthy, well-funded relayer account."""
    mock = MagicMock()
    mock.address = relayer_address
    mock.connect = AsyncMock()
    mock.close = AsyncMock()
    mock.chain_id = AsyncMock(return_value=8453)
    mock.get_fee_data = AsyncMock(return_value=GAS_PRICE)
    mock.get_transaction_count = AsyncMock(return_value=RELAYER_NONCE)
    mock.get_balance = AsyncMock(return_value=10**18)
    mock.estimate_gas = AsyncMock(return_value=GAS_ESTIMATE)
    mock.sign_and_send = AsyncMock(return_value=RELAYED_TX_HASH)
    mock.get_receipt = AsyncMock(return_value=None)
    mock.await_receipt = AsyncMock(return_value={
        "status": 1,
        "blockNumber": 12_345_678,
        "gasUsed": GAS_ESTIMATE,
    })
    return mock
