"""
Request validation for the Gasless Relayer.

Checks that an inbound request carries a decodable, signed transaction
before anything touches the chain.
"""

import logging

from .exceptions import InvalidInputError, UnsignedTransactionError
from .models import InboundRelayRequest, ParsedTransaction
from .utils.transaction_decoder import decode_signed_transaction

logger = logging.getLogger(__name__)

# Function selector (first 4 bytes of calldata) -> category label
KNOWN_SELECTORS: dict[str, str] = {
    "0xa9059cbb": "ERC-20 Transfer",
    "0x095ea7b3": "ERC-20 Approve",
    "0x23b872dd": "ERC-20 TransferFrom",
    "0xf25b3f99": "EIP-7702 Delegation",
}


def detect_transaction_type(data: bytes) -> str:
    """
    Classify calldata by its function selector.

    Informational only; the relay pipeline behaves the same for every category.
    """
    if not data:
        return "ETH Transfer"
    if len(data) < 4:
        return "Contract Interaction"
    return KNOWN_SELECTORS.get("0x" + data[:4].hex(), "Contract Interaction")


def validate_request(request: InboundRelayRequest) -> ParsedTransaction:
    """
    Validate an inbound request and decode its transaction.

    Args:
        request: The inbound relay request

    Returns:
        ParsedTransaction with the recovered signer

    Raises:
        InvalidInputError: If the signed transaction is missing or empty
        MalformedTransactionError: If the payload cannot be decoded
        UnsignedTransactionError: If the payload carries no signature
    """
    match request.signed_transaction:
        case None:
            raise InvalidInputError("Missing signed transaction")
        case str() as text if text.strip().lower() in ("", "0x"):
            raise InvalidInputError("Missing signed transaction")
        case bytes() | bytearray() as raw if not raw:
            raise InvalidInputError("Missing signed transaction")
        case str() | bytes() | bytearray():
            pass
        case other:
            raise InvalidInputError(
                f"Signed transaction must be a hex string or bytes, got {type(other).__name__}"
            )

    parsed = decode_signed_transaction(request.signed_transaction)

    if not parsed.is_signed:
        raise UnsignedTransactionError("Transaction is not signed")

    return parsed
