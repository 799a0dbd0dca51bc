"""
Error taxonomy for the Gasless Relayer.

Every failure that reaches a caller is a RelayError subclass carrying a
machine-readable ``kind``, a human-readable message, whether the caller may
retry, and the HTTP status a transport layer should use.
"""

from datetime import datetime, timezone
from typing import Any


def utc_timestamp() -> str:
    """Current UTC time in ISO-8601 form with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RelayError(Exception):
    """Base class for all relay pipeline failures.

    Attributes:
        message: Human-readable description of the failure
        details: Optional structured context for diagnosis
    """

    kind: str = "InternalFailure"
    retryable: bool = False
    http_status: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to its response body."""
        body: dict[str, Any] = {
            "success": False,
            "error": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            body["details"] = self.details
        body["timestamp"] = utc_timestamp()
        return body


# Request validation (4xx, fix the request)

class InvalidInputError(RelayError):
    """The signed transaction field is missing or empty."""

    kind = "InvalidInput"
    http_status = 400


class MalformedTransactionError(RelayError):
    """The payload could not be decoded into a transaction."""

    kind = "MalformedTransaction"
    http_status = 400


class UnsignedTransactionError(RelayError):
    """The payload decoded but carries no signature."""

    kind = "UnsignedTransaction"
    http_status = 400


# Chain interaction

class ChainUnavailableError(RelayError):
    """The chain endpoint failed to answer (timeout, refused, bad response)."""

    kind = "ChainUnavailable"
    retryable = True
    http_status = 503


class BroadcastOutcomeUnknownError(ChainUnavailableError):
    """The connection failed mid-broadcast; the transaction may still be mined.

    Not retryable: resending would pay for the same payload twice. Query the
    transaction hash instead.
    """

    retryable = False

    def __init__(self, message: str, transaction_hash: str) -> None:
        super().__init__(message, details={"transactionHash": transaction_hash})
        self.transaction_hash = transaction_hash


class SimulationRevertedError(RelayError):
    """Gas estimation reports the call would fail no matter who pays gas."""

    kind = "SimulationReverted"
    http_status = 400

    def __init__(self, message: str, reason: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["reason"] = reason
        super().__init__(message, details=details)
        self.reason = reason


class InsufficientRelayerFundsError(RelayError):
    """The relayer balance does not cover the estimated gas cost."""

    kind = "InsufficientRelayerFunds"
    http_status = 400

    def __init__(
        self,
        required: int,
        available: int,
        required_eth: str,
        available_eth: str,
    ) -> None:
        super().__init__(
            "Insufficient relayer balance for gas fees",
            details={
                "required": required,
                "available": available,
                "requiredEth": required_eth,
                "availableEth": available_eth,
            },
        )
        self.required = required
        self.available = available


class BroadcastRejectedError(RelayError):
    """The network refused the relayed transaction outright."""

    kind = "BroadcastRejected"
    retryable = True
    http_status = 409

    NONCE_COLLISION_MARKERS: tuple[str, ...] = (
        "nonce too low",
        "replacement transaction underpriced",
    )

    @property
    def is_nonce_collision(self) -> bool:
        """True when the rejection guarantees the attempt was not accepted."""
        reason = str(self.details.get("reason", self.message)).lower()
        return any(marker in reason for marker in self.NONCE_COLLISION_MARKERS)


class DuplicateSubmissionError(BroadcastRejectedError):
    """The same signed payload was already broadcast and is awaiting inclusion."""

    retryable = False

    def __init__(self, transaction_hash: str) -> None:
        super().__init__(
            "Transaction already relayed and awaiting confirmation; query its hash instead",
            details={"reason": "duplicate submission", "transactionHash": transaction_hash},
        )
        self.transaction_hash = transaction_hash


class ConfirmationTimeoutError(RelayError):
    """Inclusion was not observed in time; the broadcast may still land."""

    kind = "ConfirmationTimeout"
    http_status = 504

    def __init__(self, message: str, transaction_hash: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["transactionHash"] = transaction_hash
        super().__init__(message, details=details)
        self.transaction_hash = transaction_hash


class InternalFailureError(RelayError):
    """Unexpected failure; full diagnostics go to the log only."""

    kind = "InternalFailure"
    http_status = 500
