"""Client side of the Mineflayer bridge HTTP API."""

from .client import BridgeClient
from .responses import BridgeError, lenient_parse

__all__ = ["BridgeClient", "BridgeError", "lenient_parse"]
