#!/usr/bin/env python3
"""Data models for the Gasless Relayer.

This module provides immutable data classes for the inbound request, the
decoded transaction, the per-request chain snapshot and the artifacts the
relay pipeline produces on its way to a result.
"""

from dataclasses import dataclass, replace
from collections.abc import Mapping
from typing import Any

from web3 import Web3
from web3.types import TxParams, Wei


@dataclass(frozen=True, slots=True)
class InboundRelayRequest:
    """A client request to relay one signed transaction.

    Attributes:
        signed_transaction: Raw signed transaction, as bytes or a hex string
        transaction_type: Optional client-supplied label, passed through as-is
    """

    signed_transaction: Any
    transaction_type: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InboundRelayRequest":
        """Build a request from the wire body (``signedTransaction``, ``transactionType``)."""
        return cls(
            signed_transaction=payload.get("signedTransaction"),
            transaction_type=payload.get("transactionType"),
        )


@dataclass(frozen=True, slots=True)
class TransactionSignature:
    """ECDSA signature components attached to a transaction."""

    v: int
    r: int
    s: int


@dataclass(frozen=True, slots=True)
class ParsedTransaction:
    """Decoded view of an inbound signed transaction.

    Only ``to``, ``value`` and ``data`` are carried into the relayed
    transaction. The original nonce and fee fields are dropped on decode.

    Attributes:
        to: Checksummed destination, None for contract creation
        value: Native currency amount in wei
        data: Call payload, empty for a plain transfer
        sender: Recovered signer address, None when unsigned
        signature: Signature components, None when unsigned
        tx_type: EIP-2718 type (0 for legacy)
        chain_id: Chain id the client signed for, if encoded
        payload_hash: keccak256 of the raw inbound bytes
    """

    to: str | None
    value: int
    data: bytes
    sender: str | None
    signature: TransactionSignature | None
    tx_type: int
    chain_id: int | None
    payload_hash: str

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None

    def __str__(self) -> str:
        target = self.to[:10] + "..." if self.to else "<create>"
        return (
            f"ParsedTransaction(type={self.tx_type}, to={target}, "
            f"value={self.value}, data={len(self.data)} bytes)"
        )


@dataclass(frozen=True, slots=True)
class FeeData:
    """Current fee market data."""

    gas_price: int


@dataclass(frozen=True, slots=True)
class ChainState:
    """Snapshot of chain state read for a single request.

    Never reused across requests: a stale nonce or gas price would cause
    collisions or underpriced broadcasts.
    """

    fee_data: FeeData
    relayer_nonce: int
    relayer_balance: int | None = None

    @property
    def gas_price(self) -> int:
        return self.fee_data.gas_price

    def with_balance(self, balance: int) -> "ChainState":
        """Return a copy of the snapshot with the relayer balance filled in."""
        return replace(self, relayer_balance=balance)


@dataclass(frozen=True, slots=True)
class RelayedTransaction:
    """Outbound transaction paid for and signed by the relayer."""

    to: str | None
    value: int
    data: bytes
    gas_limit: int
    gas_price: int
    nonce: int
    chain_id: int

    def to_tx_params(self) -> TxParams:
        """Convert to web3 transaction parameters for signing."""
        tx: TxParams = {
            "value": Wei(self.value),
            "data": Web3.to_hex(self.data),
            "gas": self.gas_limit,
            "gasPrice": Wei(self.gas_price),
            "nonce": self.nonce,
            "chainId": self.chain_id,
        }
        if self.to is not None:
            tx["to"] = self.to
        return tx


@dataclass(frozen=True, slots=True)
class SubmissionHandle:
    """Handle to a broadcast transaction, available before inclusion."""

    transaction_hash: str
    relayed: RelayedTransaction
    submitted_at: str


@dataclass(frozen=True, slots=True)
class RelayReceipt:
    """Receipt fields extracted after inclusion."""

    transaction_hash: str
    block_number: int
    gas_used: int
    status: str  # "succeeded" or "reverted"

    SUCCEEDED = "succeeded"
    REVERTED = "reverted"

    @property
    def succeeded(self) -> bool:
        return self.status == self.SUCCEEDED


@dataclass(frozen=True, slots=True)
class RelayResult:
    """Terminal artifact of one successful relay.

    ``success`` reports the relay itself; ``status`` reports whether the
    included transaction executed ("Success") or reverted ("Failed").
    """

    transaction_hash: str
    block_number: int
    gas_used: int
    gas_price: int
    gas_paid: int
    gas_paid_eth: str
    status: str
    to: str | None
    value: int
    nonce: int
    relayer_address: str
    original_signer: str
    transaction_type: str
    detected_type: str
    timestamp: str
    already_relayed: bool = False
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON response body."""
        return {
            "success": self.success,
            "transactionHash": self.transaction_hash,
            "blockNumber": self.block_number,
            "gasUsed": str(self.gas_used),
            "gasPrice": str(self.gas_price),
            "gasPaid": str(self.gas_paid),
            "gasPaidEth": self.gas_paid_eth,
            "status": self.status,
            "to": self.to,
            "value": str(self.value),
            "nonce": self.nonce,
            "relayerAddress": self.relayer_address,
            "originalSigner": self.original_signer,
            "transactionType": self.transaction_type,
            "detectedType": self.detected_type,
            "alreadyRelayed": self.already_relayed,
            "timestamp": self.timestamp,
        }
