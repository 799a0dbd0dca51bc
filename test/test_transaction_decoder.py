#!/usr/bin/env python3
"""Unit tests for signed transaction decoding."""

import pytest
import rlp
from web3 import Web3

from gasless_relayer.exceptions import MalformedTransactionError
from gasless_relayer.utils.transaction_decoder import decode_signed_transaction, to_raw_bytes

from conftest import (
    ERC20_TRANSFER_DATA,
    RECIPIENT,
    TOKEN,
    sign_eip1559,
    sign_legacy,
    unsigned_eip1559,
    unsigned_legacy,
)


class TestToRawBytes:
    """Tests for payload normalization."""

    def test_hex_with_prefix(self):
        assert to_raw_bytes("0xdeadbeef") == b"\xde\xad\xbe\xef"

    def test_hex_without_prefix_and_whitespace(self):
        assert to_raw_bytes("  deadbeef\n") == b"\xde\xad\xbe\xef"

    def test_bytes_passthrough(self):
        assert to_raw_bytes(bytearray(b"\x01\x02")) == b"\x01\x02"

    def test_odd_length_hex_rejected(self):
        with pytest.raises(MalformedTransactionError, match="even-length"):
            to_raw_bytes("0xabc")

    def test_non_hex_rejected(self):
        with pytest.raises(MalformedTransactionError, match="not a hex string"):
            to_raw_bytes("0xzzzz")

    def test_unsupported_type_rejected(self):
        with pytest.raises(MalformedTransactionError, match="unsupported type int"):
            to_raw_bytes(12345)


class TestDecodeSignedTransaction:
    """Tests for decode_signed_transaction."""

    def test_legacy_transfer(self, client_address):
        """A signed legacy transfer decodes with recovered signer and EIP-155 chain id."""
        parsed = decode_signed_transaction(sign_legacy(value=10**15))

        assert parsed.tx_type == 0
        assert parsed.to == RECIPIENT
        assert parsed.value == 10**15
        assert parsed.data == b""
        assert parsed.sender == client_address
        assert parsed.is_signed
        assert parsed.chain_id == 8453

    def test_eip1559_erc20_call(self, client_address):
        """A signed type 2 token transfer keeps destination and calldata intact."""
        parsed = decode_signed_transaction(sign_eip1559(to=TOKEN, value=0, data=ERC20_TRANSFER_DATA))

        assert parsed.tx_type == 2
        assert parsed.to == TOKEN
        assert parsed.value == 0
        assert parsed.data == ERC20_TRANSFER_DATA
        assert parsed.sender == client_address
        assert parsed.chain_id == 8453

    def test_bytes_and_hex_decode_identically(self):
        signed = sign_legacy()
        from_hex = decode_signed_transaction(signed)
        from_bytes = decode_signed_transaction(Web3.to_bytes(hexstr=signed))

        assert from_hex == from_bytes

    def test_payload_hash_is_keccak_of_raw_bytes(self):
        signed = sign_legacy()
        parsed = decode_signed_transaction(signed)

        assert parsed.payload_hash == Web3.to_hex(Web3.keccak(hexstr=signed))

    def test_contract_creation_has_no_destination(self, client_address):
        parsed = decode_signed_transaction(sign_legacy(to=None, value=0, data=b"\x60\x80\x60\x40"))

        assert parsed.to is None
        assert parsed.is_contract_creation
        assert parsed.sender == client_address

    def test_unsigned_legacy_has_no_signature(self):
        parsed = decode_signed_transaction(unsigned_legacy())

        assert not parsed.is_signed
        assert parsed.sender is None
        assert parsed.to == RECIPIENT

    def test_unsigned_typed_has_no_signature(self):
        parsed = decode_signed_transaction(unsigned_eip1559())

        assert not parsed.is_signed
        assert parsed.tx_type == 2

    def test_eip155_preimage_with_zero_signature_is_unsigned(self):
        """v=chainId, r=s=0 is the unsigned EIP-155 form."""
        fields = [0, 1, 21_000, Web3.to_bytes(hexstr=RECIPIENT), 1, b"", 8453, 0, 0]
        parsed = decode_signed_transaction(rlp.encode(fields))

        assert not parsed.is_signed
        assert parsed.chain_id == 8453

    def test_empty_payload(self):
        with pytest.raises(MalformedTransactionError, match="empty payload"):
            decode_signed_transaction(b"")

    def test_unsupported_type_byte(self):
        with pytest.raises(MalformedTransactionError, match="Unsupported transaction type 0x03"):
            decode_signed_transaction(b"\x03" + rlp.encode([1, 2, 3]))

    def test_garbage_rlp(self):
        with pytest.raises(MalformedTransactionError):
            decode_signed_transaction("0xf8ffdeadbeef")

    def test_rlp_scalar_instead_of_list(self):
        with pytest.raises(MalformedTransactionError, match="expected an RLP list"):
            decode_signed_transaction(b"\x02" + rlp.encode(b"hello"))

    def test_wrong_field_count(self):
        with pytest.raises(MalformedTransactionError, match="expects 6 or 9 fields, got 4"):
            decode_signed_transaction(rlp.encode([1, 2, 3, 4]))

    def test_invalid_destination_length(self):
        fields = [0, 1, 21_000, b"\x01\x02\x03", 1, b""]
        with pytest.raises(MalformedTransactionError, match="to must be 20 bytes"):
            decode_signed_transaction(rlp.encode(fields))

    def test_unrecoverable_signature(self):
        """Signature values outside the curve order are malformed."""
        out_of_range = 2**256 - 1
        fields = [0, 1, 21_000, Web3.to_bytes(hexstr=RECIPIENT), 1, b"", 27, out_of_range, out_of_range]
        with pytest.raises(MalformedTransactionError, match="Signature could not be recovered"):
            decode_signed_transaction(rlp.encode(fields))
