"""
Confirmation reporting for relayed transactions.

Waits for inclusion without holding any relayer lock, then turns the
receipt into the final RelayResult.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from web3 import Web3
from web3.exceptions import TimeExhausted, Web3RPCError

from .exceptions import ConfirmationTimeoutError, utc_timestamp
from .models import ParsedTransaction, RelayReceipt, RelayResult, SubmissionHandle
from .solvency import format_ether
from .utils.chain_client import TRANSPORT_ERRORS
from .validation import detect_transaction_type

if TYPE_CHECKING:
    from .utils.chain_client import ChainClient

logger = logging.getLogger(__name__)

RECEIPT_STATUS_SUCCESS = 1


def extract_receipt(tx_hash: str, receipt: Mapping[str, Any]) -> RelayReceipt:
    """Pull block number, gas used and execution status from a raw receipt."""
    status = (
        RelayReceipt.SUCCEEDED
        if receipt.get('status', 0) == RECEIPT_STATUS_SUCCESS
        else RelayReceipt.REVERTED
    )
    return RelayReceipt(
        transaction_hash=tx_hash,
        block_number=int(receipt['blockNumber']),
        gas_used=int(receipt['gasUsed']),
        status=status,
    )


class ConfirmationReporter:
    """Awaits receipts and assembles relay results."""

    def __init__(
        self,
        chain_client: "ChainClient",
        timeout: float,
        poll_interval: float,
    ) -> None:
        """
        Initialize the ConfirmationReporter.

        Args:
            chain_client: Chain client used to poll for receipts
            timeout: Seconds to wait for inclusion
            poll_interval: Seconds between receipt polls
        """
        self.chain_client = chain_client
        self.timeout = timeout
        self.poll_interval = poll_interval

    async def await_confirmation(self, handle: SubmissionHandle) -> RelayReceipt:
        """
        Wait until ``handle``'s transaction is mined.

        Cancelling the awaiting task stops polling; the broadcast is unaffected.

        Raises:
            ConfirmationTimeoutError: If inclusion is not observed in time. The
                transaction may still be mined; query it by hash.
        """
        tx_hash = handle.transaction_hash
        logger.info(f"Waiting up to {self.timeout}s for confirmation of {tx_hash}")

        try:
            receipt = await self.chain_client.await_receipt(
                tx_hash, timeout=self.timeout, poll_latency=self.poll_interval
            )
        except TimeExhausted as e:
            logger.warning(f"No receipt for {tx_hash} after {self.timeout}s; inclusion still pending")
            raise ConfirmationTimeoutError(
                f"Transaction not confirmed within {self.timeout}s; it may still be included. "
                "Query the transaction hash instead of relaying again",
                transaction_hash=tx_hash,
            ) from e
        except (Web3RPCError, *TRANSPORT_ERRORS) as e:
            logger.warning(f"Receipt polling for {tx_hash} failed: {e}")
            raise ConfirmationTimeoutError(
                "Confirmation status unknown: receipt polling failed. "
                "Query the transaction hash instead of relaying again",
                transaction_hash=tx_hash,
                details={"reason": str(e)},
            ) from e

        relay_receipt = extract_receipt(tx_hash, receipt)
        if relay_receipt.succeeded:
            logger.info(f"✓ Transaction confirmed in block {relay_receipt.block_number}")
        else:
            logger.warning(f"✗ Transaction included in block {relay_receipt.block_number} but reverted")
        return relay_receipt

    def build_result(
        self,
        handle: SubmissionHandle,
        receipt: RelayReceipt,
        parsed: ParsedTransaction,
        relayer_address: str,
        transaction_type: str | None,
    ) -> RelayResult:
        """
        Assemble the final result.

        Gas paid uses the price locked in at submission, never a later quote.
        """
        gas_price = handle.relayed.gas_price
        gas_paid = receipt.gas_used * gas_price

        return RelayResult(
            transaction_hash=handle.transaction_hash,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
            gas_price=gas_price,
            gas_paid=gas_paid,
            gas_paid_eth=format_ether(gas_paid),
            status="Success" if receipt.succeeded else "Failed",
            to=handle.relayed.to,
            value=handle.relayed.value,
            nonce=handle.relayed.nonce,
            relayer_address=relayer_address,
            original_signer=Web3.to_checksum_address(parsed.sender) if parsed.sender else "",
            transaction_type=transaction_type or "unknown",
            detected_type=detect_transaction_type(parsed.data),
            timestamp=utc_timestamp(),
        )
