"""Relayer balance checks against estimated gas cost."""

import logging
from decimal import Decimal

from web3 import Web3

from .exceptions import InsufficientRelayerFundsError

logger = logging.getLogger(__name__)


def format_ether(wei: int) -> str:
    """Render a wei amount as an ether decimal string, e.g. ``1.5`` or ``0.0``."""
    text = f"{Decimal(Web3.from_wei(wei, 'ether')).normalize():f}"
    return text if "." in text else text + ".0"


def check_solvency(gas_estimate: int, gas_price: int, relayer_balance: int) -> int:
    """
    Ensure the relayer can pay for ``gas_estimate`` at ``gas_price``.

    Args:
        gas_estimate: Estimated gas units
        gas_price: Gas price in wei
        relayer_balance: Relayer balance in wei

    Returns:
        Total estimated cost in wei

    Raises:
        InsufficientRelayerFundsError: If the balance is below the total cost
    """
    total_cost = gas_estimate * gas_price

    if relayer_balance < total_cost:
        logger.error(
            f"Relayer balance too low: required {format_ether(total_cost)} ETH, "
            f"available {format_ether(relayer_balance)} ETH. Top up the relayer account"
        )
        raise InsufficientRelayerFundsError(
            required=total_cost,
            available=relayer_balance,
            required_eth=format_ether(total_cost),
            available_eth=format_ether(relayer_balance),
        )

    return total_cost
