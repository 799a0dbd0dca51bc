"""
Signed transaction decoding.

Decodes legacy and EIP-2718 typed transaction envelopes into a
ParsedTransaction, recovering the signer when a signature is attached.
"""

import logging
from typing import Any

import rlp
from eth_account import Account
from rlp.exceptions import RLPException
from web3 import Web3

from ..exceptions import MalformedTransactionError
from ..models import ParsedTransaction, TransactionSignature

logger = logging.getLogger(__name__)

LEGACY_TX_TYPE = 0

# Decoded with rlp rather than eth_account so unsigned envelopes can be told apart
# from malformed ones. Type 0x03 is rejected: blob sidecars cannot be relayed.
# (unsigned field count, index of to, index of value, index of data)
FIELD_LAYOUTS: dict[int, tuple[int, int, int, int]] = {
    LEGACY_TX_TYPE: (6, 3, 4, 5),  # nonce, gasPrice, gas, to, value, data
    0x01: (8, 4, 5, 6),  # chainId, nonce, gasPrice, gas, to, value, data, accessList
    0x02: (9, 5, 6, 7),  # chainId, nonce, maxPriorityFee, maxFee, gas, to, value, data, accessList
    0x04: (10, 5, 6, 7),  # EIP-1559 fields + authorizationList
}

SIGNATURE_FIELD_COUNT = 3


def to_raw_bytes(signed_transaction: Any) -> bytes:
    """
    Normalize a signed transaction given as bytes or hex text.

    Raises:
        MalformedTransactionError: If the value is not bytes or valid hex
    """
    match signed_transaction:
        case bytes() | bytearray() | memoryview():
            return bytes(signed_transaction)
        case str():
            text = signed_transaction.strip()
            body = text[2:] if text[:2].lower() == "0x" else text
            if not body or len(body) % 2:
                raise MalformedTransactionError("Invalid signed transaction format: not an even-length hex string")
            try:
                return bytes.fromhex(body)
            except ValueError:
                raise MalformedTransactionError("Invalid signed transaction format: not a hex string") from None
        case _:
            raise MalformedTransactionError(
                f"Invalid signed transaction format: unsupported type {type(signed_transaction).__name__}"
            )


def _as_int(item: Any, field_name: str) -> int:
    if not isinstance(item, bytes):
        raise MalformedTransactionError(f"Invalid signed transaction format: {field_name} is not a scalar")
    return int.from_bytes(item, "big")


def _as_address(item: Any) -> str | None:
    if not isinstance(item, bytes):
        raise MalformedTransactionError("Invalid signed transaction format: to is not a scalar")
    if item == b"":
        return None
    if len(item) != 20:
        raise MalformedTransactionError(
            f"Invalid signed transaction format: to must be 20 bytes, got {len(item)}"
        )
    return Web3.to_checksum_address(item)


def _split_envelope(raw: bytes) -> tuple[int, list[Any]]:
    """Return the transaction type and its decoded RLP field list."""
    if not raw:
        raise MalformedTransactionError("Invalid signed transaction format: empty payload")

    first = raw[0]
    if first >= 0xC0:
        tx_type, body = LEGACY_TX_TYPE, raw
    elif first in FIELD_LAYOUTS:
        tx_type, body = first, raw[1:]
    else:
        raise MalformedTransactionError(f"Unsupported transaction type 0x{first:02x}")

    try:
        fields = rlp.decode(body)
    except RLPException as e:
        raise MalformedTransactionError(f"Invalid signed transaction format: {e}") from e

    if not isinstance(fields, list):
        raise MalformedTransactionError("Invalid signed transaction format: expected an RLP list")
    return tx_type, fields


def decode_signed_transaction(signed_transaction: Any) -> ParsedTransaction:
    """
    Decode a raw transaction into a ParsedTransaction.

    The signature counts as absent when the signature fields are missing or
    when both r and s are zero (an unsigned EIP-155 preimage).

    Args:
        signed_transaction: Raw transaction bytes or 0x-prefixed hex

    Returns:
        ParsedTransaction with ``sender`` recovered when signed

    Raises:
        MalformedTransactionError: If the payload cannot be decoded
    """
    raw = to_raw_bytes(signed_transaction)
    tx_type, fields = _split_envelope(raw)
    unsigned_count, to_index, value_index, data_index = FIELD_LAYOUTS[tx_type]

    if len(fields) not in (unsigned_count, unsigned_count + SIGNATURE_FIELD_COUNT):
        raise MalformedTransactionError(
            f"Invalid signed transaction format: type {tx_type} expects "
            f"{unsigned_count} or {unsigned_count + SIGNATURE_FIELD_COUNT} fields, got {len(fields)}"
        )

    to = _as_address(fields[to_index])
    value = _as_int(fields[value_index], "value")
    data = fields[data_index]
    if not isinstance(data, bytes):
        raise MalformedTransactionError("Invalid signed transaction format: data is not a byte string")

    chain_id = None if tx_type == LEGACY_TX_TYPE else _as_int(fields[0], "chainId")

    signature: TransactionSignature | None = None
    if len(fields) == unsigned_count + SIGNATURE_FIELD_COUNT:
        v, r, s = (_as_int(item, name) for item, name in zip(fields[-3:], ("v", "r", "s")))
        if r or s:
            signature = TransactionSignature(v=v, r=r, s=s)
        if tx_type == LEGACY_TX_TYPE:
            if signature is None:
                chain_id = v or None  # unsigned EIP-155 preimage carries chainId in v
            elif v >= 35:
                chain_id = (v - 35) // 2

    sender: str | None = None
    if signature is not None:
        try:
            sender = Account.recover_transaction(raw)
        except Exception as e:
            raise MalformedTransactionError(f"Signature could not be recovered: {e}") from e

    parsed = ParsedTransaction(
        to=to,
        value=value,
        data=data,
        sender=sender,
        signature=signature,
        tx_type=tx_type,
        chain_id=chain_id,
        payload_hash=Web3.to_hex(Web3.keccak(raw)),
    )
    logger.debug(f"Decoded {parsed}")
    return parsed
