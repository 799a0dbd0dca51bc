"""
Gasless Relayer package.

Relay service that rebroadcasts client-signed transactions from a
service-operated account that pays the gas.
"""

from .config import RelayerConfig
from .exceptions import RelayError
from .models import ParsedTransaction, RelayResult
from .relayer import GaslessRelayer

__all__ = ["RelayerConfig", "GaslessRelayer", "RelayError", "ParsedTransaction", "RelayResult"]
__version__ = "0.1.0"
