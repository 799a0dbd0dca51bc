#!/usr/bin/env python3
"""Tests for relayer solvency checks."""

import pytest

from gasless_relayer.exceptions import InsufficientRelayerFundsError
from gasless_relayer.solvency import check_solvency, format_ether


class TestFormatEther:
    """Tests for format_ether."""

    @pytest.mark.parametrize("wei, expected", [
        (0, "0.0"),
        (10**18, "1.0"),
        (15 * 10**17, "1.5"),
        (1, "0.000000000000000001"),
        (42_000_000_000_000, "0.000042"),
    ])
    def test_formatting(self, wei, expected):
        assert format_ether(wei) == expected


class TestCheckSolvency:
    """Tests for check_solvency."""

    def test_sufficient_balance_returns_total_cost(self):
        assert check_solvency(21_000, 2_000_000_000, 10**18) == 42_000_000_000_000

    def test_exact_balance_is_enough(self):
        assert check_solvency(21_000, 10, 210_000) == 210_000

    def test_insufficient_balance_raises(self):
        with pytest.raises(InsufficientRelayerFundsError) as exc_info:
            check_solvency(21_000, 2_000_000_000, 1_000)

        error = exc_info.value
        assert error.required == 42_000_000_000_000
        assert error.available == 1_000
        assert error.details["requiredEth"] == "0.000042"
        assert error.details["availableEth"] == "0.000000000000001"
        assert error.http_status == 400
        assert not error.retryable

    def test_error_body(self):
        with pytest.raises(InsufficientRelayerFundsError) as exc_info:
            check_solvency(1, 1, 0)

        body = exc_info.value.to_dict()
        assert body["success"] is False
        assert body["error"] == "InsufficientRelayerFunds"
        assert body["message"] == "Insufficient relayer balance for gas fees"
        assert body["details"]["required"] == 1
        assert body["details"]["available"] == 0
