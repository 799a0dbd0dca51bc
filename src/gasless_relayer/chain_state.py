"""Per-request chain state snapshot for the relayer account."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

from .models import ChainState, FeeData

if TYPE_CHECKING:
    from .utils.chain_client import ChainClient

logger = logging.getLogger(__name__)


async def gather_reads(*reads: Awaitable[Any]) -> list[Any]:
    """
    Run independent chain reads concurrently and wait for all of them.

    Every read finishes before an error is raised, so no read is left running
    in the background. The first failing read, in argument order, is raised.
    """
    results = await asyncio.gather(*reads, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class ChainStateReader:
    """Reads fee data and the relayer nonce fresh for every request."""

    def __init__(self, chain_client: "ChainClient") -> None:
        self.chain_client = chain_client

    async def read(self, relayer_address: str) -> ChainState:
        """
        Fetch current fee data and the relayer's next nonce concurrently.

        Raises:
            ChainUnavailableError: If either read fails
        """
        gas_price, nonce = await gather_reads(
            self.chain_client.get_fee_data(),
            self.chain_client.get_transaction_count(relayer_address),
        )
        logger.info(f"Chain state: gas_price={gas_price} wei, relayer nonce={nonce}")
        return ChainState(fee_data=FeeData(gas_price=gas_price), relayer_nonce=nonce)
