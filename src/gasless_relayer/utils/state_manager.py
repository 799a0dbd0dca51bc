"""
State management utilities for the Gasless Relayer.

This module tracks recently relayed payloads in a bounded LRU so that a
client repeating a request is told about the earlier broadcast instead of
paying for a second one. Nothing here survives a restart.
"""

from collections import OrderedDict
from dataclasses import dataclass

from ..models import RelayResult, SubmissionHandle


@dataclass
class RelayRecord:
    """What is known about one relayed payload."""
    handle: SubmissionHandle
    result: RelayResult | None = None

    @property
    def confirmed(self) -> bool:
        return self.result is not None


class RelayStateManager:
    """
    Remembers recent submissions keyed by inbound payload hash.

    Uses OrderedDict for O(1) lookups with LRU eviction of the oldest entry
    once ``max_entries`` is reached.
    """

    def __init__(self, max_entries: int = 1000):
        """
        Initialize the state manager.

        Args:
            max_entries: Maximum number of payloads to remember
        """
        self.max_entries = max_entries
        self._records: OrderedDict[str, RelayRecord] = OrderedDict()

    def __len__(self) -> int:
        return len(self._records)

    def lookup(self, payload_hash: str) -> RelayRecord | None:
        """
        Get the record for a payload, refreshing its LRU position.

        Args:
            payload_hash: keccak256 of the inbound signed bytes

        Returns:
            RelayRecord if the payload was relayed recently, None otherwise
        """
        record = self._records.get(payload_hash)
        if record is not None:
            self._records.move_to_end(payload_hash)
        return record

    def track_submission(self, payload_hash: str, handle: SubmissionHandle) -> None:
        """
        Record a broadcast as soon as the network accepts it.

        Args:
            payload_hash: keccak256 of the inbound signed bytes
            handle: Submission handle of the relayed transaction
        """
        if payload_hash in self._records:
            self._records.move_to_end(payload_hash)
        elif len(self._records) >= self.max_entries:
            self._records.popitem(last=False)

        self._records[payload_hash] = RelayRecord(handle=handle)

    def record_result(self, payload_hash: str, result: RelayResult) -> None:
        """
        Attach the confirmed result to a tracked submission.

        Results for payloads already evicted from the window are dropped.
        """
        record = self._records.get(payload_hash)
        if record is None:
            return
        record.result = result
        self._records.move_to_end(payload_hash)

    def get_stats(self) -> dict:
        """
        Get current tracking statistics.

        Returns:
            Dictionary with current state metrics
        """
        confirmed = sum(1 for record in self._records.values() if record.confirmed)
        return {
            'tracked': len(self._records),
            'confirmed': confirmed,
            'pending': len(self._records) - confirmed,
        }
