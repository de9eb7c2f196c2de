"""RCON console protocol: packet framing and client."""

from .client import NO_RESPONSE, RconClient
from .packet import Packet, encode_packet, read_packet

__all__ = ["NO_RESPONSE", "Packet", "RconClient", "encode_packet", "read_packet"]
