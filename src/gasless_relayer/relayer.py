"""
Gasless Relayer implementation.

This module contains the relay service that owns the chain connection and
the relayer key, and drives each request through validation, chain reads,
gas estimation, solvency checks, broadcast and confirmation.
"""

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from .chain_state import ChainStateReader, gather_reads
from .config import RelayerConfig
from .confirmation import ConfirmationReporter, extract_receipt
from .exceptions import (
    BroadcastOutcomeUnknownError,
    BroadcastRejectedError,
    ChainUnavailableError,
    DuplicateSubmissionError,
    InternalFailureError,
    InvalidInputError,
    RelayError,
    utc_timestamp,
)
from .gas_estimator import GasEstimator
from .models import InboundRelayRequest, ParsedTransaction, RelayResult, SubmissionHandle
from .solvency import check_solvency
from .submitter import TransactionSubmitter, build_relayed_transaction
from .utils.chain_client import ChainClient
from .utils.rofl_utility import RoflUtility
from .utils.state_manager import RelayStateManager
from .validation import detect_transaction_type, validate_request

logger = logging.getLogger(__name__)


class GaslessRelayer:
    """
    Relay service that pays gas for client-signed transactions.

    One instance owns one chain connection and one relayer account. Requests
    run concurrently; reading the nonce through broadcasting is serialized
    per instance so two requests never race for the same nonce. Waiting for
    confirmation happens outside that critical section.
    """

    def __init__(self, config: RelayerConfig, chain_client: ChainClient | None = None):
        """
        Initialize the Gasless Relayer.

        Args:
            config: Relayer configuration
            chain_client: Pre-built chain client; built from config on start() if omitted
        """
        self.config = config
        self.chain_client = chain_client
        self.state_manager = RelayStateManager(max_entries=config.policy.dedupe_window)

        # Single-flight guard for the relayer account's nonce sequence
        self._submission_lock = asyncio.Lock()

        if chain_client is not None:
            self._init_components(chain_client)

    def _init_components(self, chain_client: ChainClient) -> None:
        """Wire the pipeline stages to the chain client."""
        self.state_reader = ChainStateReader(chain_client)
        self.gas_estimator = GasEstimator(chain_client)
        self.submitter = TransactionSubmitter(chain_client)
        self.reporter = ConfirmationReporter(
            chain_client,
            timeout=self.config.policy.confirmation_timeout,
            poll_interval=self.config.policy.receipt_poll_interval,
        )

    @classmethod
    def from_env(cls, local_mode: bool = False) -> "GaslessRelayer":
        """
        Create a GaslessRelayer instance from environment variables.

        Args:
            local_mode: Sign with RELAYER_PRIVATE_KEY instead of the ROFL key store

        Returns:
            Configured GaslessRelayer instance (call start() before relaying)

        Raises:
            ValueError: If required environment variables are missing
        """
        config = RelayerConfig.from_env(local_mode=local_mode)
        config.log_config()
        return cls(config)

    @property
    def relayer_address(self) -> str:
        if self.chain_client is None:
            raise RuntimeError("Relayer not started")
        return self.chain_client.address

    async def _resolve_secret(self) -> str:
        """Load the relayer key from local config or the ROFL key store."""
        if self.config.local_mode:
            logger.debug("Using local private key (LOCAL MODE)")
            return self.config.local_private_key or ""

        logger.debug("Fetching relayer key from ROFL...")
        rofl_util = RoflUtility(self.config.rofl_appd_url, timeout=self.config.policy.request_timeout)
        return await rofl_util.fetch_key(self.config.key_id)

    async def start(self) -> None:
        """
        Connect to the chain and verify it is the configured network.

        Raises:
            ValueError: If the RPC reports a different chain id
            ChainUnavailableError: If the RPC cannot be reached
        """
        if self.chain_client is None:
            secret = await self._resolve_secret()
            self.chain_client = ChainClient(
                rpc_url=self.config.chain.rpc_url,
                secret=secret,
                request_timeout=self.config.policy.request_timeout,
            )
            self._init_components(self.chain_client)

        await self.chain_client.connect()

        chain_id = await self.chain_client.chain_id()
        if chain_id != self.config.chain.chain_id:
            await self.close()
            raise ValueError(
                f"RPC at {self.config.chain.rpc_url} serves chain {chain_id}, "
                f"expected CHAIN_ID={self.config.chain.chain_id}"
            )

        logger.info(
            f"Gasless Relayer ready ({'LOCAL' if self.config.local_mode else 'ROFL'} mode, "
            f"chain {chain_id}, relayer {self.relayer_address})"
        )

    async def close(self) -> None:
        """Release the chain connection."""
        if self.chain_client is not None:
            await self.chain_client.close()
            logger.info("Gasless Relayer stopped")

    async def __aenter__(self) -> "GaslessRelayer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _serialized(self) -> contextlib.AbstractAsyncContextManager:
        if self.config.policy.serialize_submissions:
            return self._submission_lock
        return contextlib.nullcontext()

    async def _check_repeat(self, parsed: ParsedTransaction, transaction_type: str | None) -> RelayResult | None:
        """
        Return the earlier result for a payload relayed before.

        An unconfirmed earlier broadcast (still waiting, timed out, or with an
        unknown outcome) is looked up by hash once; if it has been mined since,
        its result is recorded and returned.

        Raises:
            DuplicateSubmissionError: If the earlier broadcast is still not mined
        """
        record = self.state_manager.lookup(parsed.payload_hash)
        if record is None:
            return None

        if record.result is None:
            tx_hash = record.handle.transaction_hash
            try:
                receipt = await self.chain_client.get_receipt(tx_hash)
            except ChainUnavailableError as e:
                logger.warning(f"Could not look up earlier broadcast {tx_hash}: {e.message}")
                receipt = None

            if receipt is None:
                logger.warning(f"Payload already broadcast as {tx_hash}, not relaying again")
                raise DuplicateSubmissionError(tx_hash)

            result = self.reporter.build_result(
                record.handle,
                extract_receipt(tx_hash, receipt),
                parsed,
                self.relayer_address,
                transaction_type,
            )
            self.state_manager.record_result(parsed.payload_hash, result)
            logger.info(f"Earlier broadcast {tx_hash} has since been mined in block {result.block_number}")
            return replace(result, already_relayed=True)

        logger.warning(
            f"Payload already relayed as {record.result.transaction_hash}; returning earlier result"
        )
        return replace(record.result, already_relayed=True)

    async def _submit(self, parsed: ParsedTransaction) -> SubmissionHandle:
        """
        Read state, estimate, check solvency, build and broadcast.

        Rebuilds from fresh state after a nonce collision, up to retry_count times.
        A broadcast with an unknown outcome is tracked before the error propagates,
        so a repeat of the payload is never sent again.
        """
        attempts = self.config.policy.retry_count + 1
        relayer_address = self.relayer_address
        attempt = 1

        while True:
            state = await self.state_reader.read(relayer_address)

            gas_estimate, balance = await gather_reads(
                self.gas_estimator.estimate(parsed),
                self.chain_client.get_balance(relayer_address),
            )
            state = state.with_balance(balance)

            check_solvency(gas_estimate, state.gas_price, balance)

            relayed = build_relayed_transaction(
                parsed, state, gas_estimate, chain_id=self.config.chain.chain_id
            )

            try:
                return await self.submitter.submit(relayed)
            except BroadcastOutcomeUnknownError as e:
                self.state_manager.track_submission(
                    parsed.payload_hash,
                    SubmissionHandle(
                        transaction_hash=e.transaction_hash,
                        relayed=relayed,
                        submitted_at=utc_timestamp(),
                    ),
                )
                raise
            except BroadcastRejectedError as e:
                if not e.is_nonce_collision or attempt == attempts:
                    raise
                logger.warning(
                    f"Nonce collision on attempt {attempt}/{attempts} "
                    f"({e.details.get('reason')}); re-reading chain state"
                )
                attempt += 1

    async def relay(self, signed_transaction: Any, transaction_type: str | None = None) -> RelayResult:
        """
        Relay one signed transaction and wait for its inclusion.

        Args:
            signed_transaction: Raw signed transaction (bytes or hex string)
            transaction_type: Optional client label, passed through unchanged

        Returns:
            RelayResult for the included transaction

        Raises:
            RelayError: A subclass naming the stage that failed
        """
        if self.chain_client is None:
            raise RuntimeError("GaslessRelayer.start() must be awaited before relaying")

        request = InboundRelayRequest(signed_transaction=signed_transaction, transaction_type=transaction_type)
        logger.info(f"Processing {request.transaction_type or 'unknown'} transaction type")

        parsed = validate_request(request)
        logger.info(
            f"Validated {detect_transaction_type(parsed.data)} from {parsed.sender}: {parsed}"
        )
        if parsed.chain_id is not None and parsed.chain_id != self.config.chain.chain_id:
            logger.warning(
                f"Client signed for chain {parsed.chain_id}; relaying on chain {self.config.chain.chain_id}"
            )

        if (previous := await self._check_repeat(parsed, request.transaction_type)) is not None:
            return previous

        async with self._serialized():
            # Re-check: an identical request may have broadcast while we waited
            if (previous := await self._check_repeat(parsed, request.transaction_type)) is not None:
                return previous
            handle = await self._submit(parsed)
            self.state_manager.track_submission(parsed.payload_hash, handle)

        receipt = await self.reporter.await_confirmation(handle)
        result = self.reporter.build_result(
            handle, receipt, parsed, self.relayer_address, request.transaction_type
        )
        self.state_manager.record_result(parsed.payload_hash, result)

        logger.info(f"Transaction relayed: {result.to_dict()}")
        return result

    async def handle(self, payload: Mapping[str, Any]) -> tuple[int, dict[str, Any]]:
        """
        Transport-agnostic request boundary.

        Never raises for relay failures: every outcome becomes an HTTP-style
        status code and a JSON-serializable body.

        Args:
            payload: Request body with ``signedTransaction`` and optional ``transactionType``

        Returns:
            Tuple of (status code, response body)
        """
        try:
            if not isinstance(payload, Mapping):
                raise InvalidInputError("Request body must be a JSON object")
            request = InboundRelayRequest.from_payload(payload)
            label = request.transaction_type
            result = await self.relay(
                request.signed_transaction,
                str(label) if label is not None else None,
            )
            return 200, result.to_dict()
        except RelayError as e:
            logger.warning(f"Relay failed [{e.kind}]: {e.message}")
            return e.http_status, e.to_dict()
        except Exception as e:
            logger.error(f"Relayer error: {e}", exc_info=True)
            error = InternalFailureError("Transaction failed", details={"reason": str(e)})
            return error.http_status, error.to_dict()

    def get_stats(self) -> dict:
        """Get recent-relay statistics."""
        return self.state_manager.get_stats()
