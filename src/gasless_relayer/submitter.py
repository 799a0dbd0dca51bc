#!/usr/bin/env python3
"""Relayed transaction construction and broadcast.

This module builds the relayer-paid copy of a client transaction and hands
it to the chain client for signing and submission.
"""

import logging
from typing import TYPE_CHECKING

from .exceptions import utc_timestamp
from .models import ChainState, ParsedTransaction, RelayedTransaction, SubmissionHandle

if TYPE_CHECKING:
    from .utils.chain_client import ChainClient

logger = logging.getLogger(__name__)


def build_relayed_transaction(
    parsed: ParsedTransaction,
    state: ChainState,
    gas_estimate: int,
    chain_id: int,
) -> RelayedTransaction:
    """
    Build the relayer-paid transaction.

    Destination, value and payload are copied unchanged; gas, price and
    nonce come from this request's snapshot.

    Args:
        parsed: The decoded client transaction
        state: Chain state read for this request
        gas_estimate: Gas limit to use
        chain_id: Network identifier of the target chain

    Returns:
        RelayedTransaction ready for signing
    """
    return RelayedTransaction(
        to=parsed.to,
        value=parsed.value,
        data=parsed.data,
        gas_limit=gas_estimate,
        gas_price=state.gas_price,
        nonce=state.relayer_nonce,
        chain_id=chain_id,
    )


class TransactionSubmitter:
    """Handles signing and broadcasting of relayed transactions."""

    def __init__(self, chain_client: "ChainClient") -> None:
        """
        Initialize the TransactionSubmitter.

        Args:
            chain_client: Chain client holding the relayer key
        """
        self.chain_client = chain_client

    async def submit(self, relayed: RelayedTransaction) -> SubmissionHandle:
        """
        Sign and broadcast a relayed transaction.

        Returns as soon as the network accepts the transaction, before it is
        included in a block.

        Args:
            relayed: Transaction to broadcast

        Returns:
            SubmissionHandle exposing the transaction hash

        Raises:
            BroadcastRejectedError: If the network rejects the transaction
            ChainUnavailableError: If the broadcast outcome is unknown
        """
        logger.info(
            f"Submitting relayed transaction: nonce={relayed.nonce}, "
            f"gas={relayed.gas_limit}, gas_price={relayed.gas_price}, chain={relayed.chain_id}"
        )

        tx_hash = await self.chain_client.sign_and_send(relayed.to_tx_params())

        logger.info(f"✓ Transaction submitted: {tx_hash}")
        return SubmissionHandle(
            transaction_hash=tx_hash,
            relayed=relayed,
            submitted_at=utc_timestamp(),
        )
