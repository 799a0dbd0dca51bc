import asyncio
import logging
from typing import Any

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.providers import WebSocketProvider
from web3.exceptions import (
    BadResponseFormat,
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    TransactionNotFound,
    Web3RPCError,
)
from web3.types import TxParams, TxReceipt

from ..exceptions import (
    BroadcastOutcomeUnknownError,
    BroadcastRejectedError,
    ChainUnavailableError,
    SimulationRevertedError,
)

logger = logging.getLogger(__name__)

# Failures of the connection itself, as opposed to errors the node reports
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
    BadResponseFormat,
    ProviderConnectionError,  # persistent (websocket) provider dropped or never connected
    TimeExhausted,  # persistent provider request timeout
)

# JSON-RPC codes that mean "try again later" rather than "this call is invalid"
RETRYABLE_RPC_CODES: frozenset[int] = frozenset({-32005, 429})


def rpc_error_code(error: Web3RPCError) -> int | None:
    """Extract the JSON-RPC error code from a node error, if present."""
    response = getattr(error, "rpc_response", None) or {}
    payload = response.get("error") if isinstance(response, dict) else None
    return payload.get("code") if isinstance(payload, dict) else None


class ChainClient:
    """
    Async chain access for the relayer account.

    Owns one AsyncWeb3 connection and the relayer's LocalAccount. Library
    errors are classified here into the relay error taxonomy so that the
    pipeline stages never see raw web3 or aiohttp exceptions.
    """

    def __init__(self, rpc_url: str, secret: str, request_timeout: int = 30) -> None:
        """
        Initialize the ChainClient.

        Args:
            rpc_url: RPC URL for the network (http(s) or ws(s))
            secret: Private key of the relayer account
            request_timeout: Per-request timeout in seconds for HTTP RPC
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")
        if not secret:
            raise ValueError("Private key is required for signing transactions")

        self.rpc_url = rpc_url
        self.account: LocalAccount = Account.from_key(secret)

        if rpc_url.startswith(("ws:", "wss:")):
            self.w3 = AsyncWeb3(WebSocketProvider(rpc_url))
        else:
            self.w3 = AsyncWeb3(AsyncHTTPProvider(
                rpc_url,
                request_kwargs={'timeout': aiohttp.ClientTimeout(total=request_timeout)}
            ))

    @property
    def address(self) -> str:
        return self.account.address

    async def connect(self) -> None:
        """Open persistent connections (websocket providers only)."""
        if isinstance(self.w3.provider, WebSocketProvider):
            await self.w3.provider.connect()

    async def close(self) -> None:
        """Release the provider's connection or cached HTTP session."""
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    async def _read(self, description: str, call: Any) -> Any:
        try:
            return await call
        except (Web3RPCError, *TRANSPORT_ERRORS) as e:
            logger.warning(f"Chain read failed ({description}): {e}")
            raise ChainUnavailableError(f"Failed to {description}: {e}") from e

    async def chain_id(self) -> int:
        return int(await self._read("fetch chain id", self.w3.eth.chain_id))

    async def get_fee_data(self) -> int:
        """Current legacy gas price in wei."""
        return int(await self._read("fetch fee data", self.w3.eth.gas_price))

    async def get_transaction_count(self, address: str) -> int:
        """Next usable nonce for ``address``, counting pending transactions."""
        return int(await self._read(
            "fetch transaction count",
            self.w3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending"),
        ))

    async def get_balance(self, address: str) -> int:
        return int(await self._read(
            "fetch balance",
            self.w3.eth.get_balance(Web3.to_checksum_address(address)),
        ))

    async def estimate_gas(self, params: TxParams) -> int:
        """
        Simulate a call and return its gas estimate.

        Raises:
            SimulationRevertedError: If the node reports the call would fail
            ChainUnavailableError: On transport errors or rate limiting
        """
        try:
            return int(await self.w3.eth.estimate_gas(params))
        except ContractLogicError as e:
            details = {"data": e.data} if getattr(e, "data", None) else None
            raise SimulationRevertedError("Gas estimation failed", reason=str(e), details=details) from e
        except Web3RPCError as e:
            if rpc_error_code(e) in RETRYABLE_RPC_CODES:
                raise ChainUnavailableError(f"Failed to estimate gas: {e}") from e
            raise SimulationRevertedError("Gas estimation failed", reason=str(e)) from e
        except TRANSPORT_ERRORS as e:
            raise ChainUnavailableError(f"Failed to estimate gas: {e}") from e

    async def sign_and_send(self, tx: TxParams) -> str:
        """
        Sign ``tx`` with the relayer key and broadcast it.

        Returns:
            Transaction hash as 0x-prefixed hex, known before inclusion

        Raises:
            BroadcastRejectedError: If the node refuses the transaction
            BroadcastOutcomeUnknownError: If the connection failed mid-broadcast
        """
        signed = self.account.sign_transaction(tx)
        tx_hash = Web3.to_hex(signed.hash)

        try:
            await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Web3RPCError as e:
            raise BroadcastRejectedError(
                "Network rejected the relayed transaction",
                details={"reason": str(e), "transactionHash": tx_hash},
            ) from e
        except TRANSPORT_ERRORS as e:
            logger.error(f"Broadcast of {tx_hash} interrupted: {e}")
            raise BroadcastOutcomeUnknownError(
                f"Broadcast outcome unknown: {e}. Check inclusion by hash instead of retrying",
                transaction_hash=tx_hash,
            ) from e

        return tx_hash

    async def await_receipt(self, tx_hash: str, timeout: float, poll_latency: float) -> TxReceipt:
        """Wait for inclusion. Raises web3's TimeExhausted when ``timeout`` elapses."""
        return await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout, poll_latency=poll_latency
        )

    async def get_receipt(self, tx_hash: str) -> TxReceipt | None:
        """Receipt for ``tx_hash`` if already mined, None while it is pending or unknown."""
        try:
            return await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except (Web3RPCError, *TRANSPORT_ERRORS) as e:
            logger.warning(f"Chain read failed (fetch receipt): {e}")
            raise ChainUnavailableError(f"Failed to fetch receipt: {e}") from e
