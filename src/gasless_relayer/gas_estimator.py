"""
Gas estimation for relayed transactions.

The call is simulated as the original signer, so a failure here means the
operation itself is invalid, whoever ends up paying for gas.
"""

import logging
from typing import TYPE_CHECKING

from web3 import Web3
from web3.types import TxParams, Wei

from .exceptions import SimulationRevertedError
from .models import ParsedTransaction

if TYPE_CHECKING:
    from .utils.chain_client import ChainClient

logger = logging.getLogger(__name__)


def build_call_params(parsed: ParsedTransaction) -> TxParams:
    """Call parameters for simulation; ``to`` is omitted for contract creation."""
    params: TxParams = {
        "from": parsed.sender,
        "value": Wei(parsed.value),
        "data": Web3.to_hex(parsed.data),
    }
    if parsed.to is not None:
        params["to"] = parsed.to
    return params


class GasEstimator:
    """Asks the chain how much gas a transaction would consume."""

    def __init__(self, chain_client: "ChainClient") -> None:
        self.chain_client = chain_client

    async def estimate(self, parsed: ParsedTransaction) -> int:
        """
        Estimate gas for ``parsed``.

        Raises:
            SimulationRevertedError: If the call would fail
            ChainUnavailableError: On transport errors
        """
        try:
            gas_estimate = await self.chain_client.estimate_gas(build_call_params(parsed))
        except SimulationRevertedError as e:
            logger.warning(f"Gas estimation failed for {parsed}: {e.reason}")
            raise

        logger.info(f"Gas estimate: {gas_estimate}")
        return gas_estimate
