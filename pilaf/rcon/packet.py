"""Framing for the Source/Minecraft RCON console protocol.

Wire layout (all integers signed 32-bit little-endian)::

    length | request id | packet type | body (UTF-8) | 0x00 0x00

``length`` counts everything after itself, so the smallest legal packet
(empty body) declares a length of 10.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import MalformedPacketError

SERVERDATA_AUTH = 3
SERVERDATA_AUTH_RESPONSE = 2
SERVERDATA_EXECCOMMAND = 2
SERVERDATA_RESPONSE_VALUE = 0

AUTH_FAILURE_ID = -1

HEADER_SIZE = 10  # id + type + two trailing nulls
MAX_PACKET_SIZE = 1 << 20

_INT = struct.Struct("<i")
_HEADER = struct.Struct("<ii")

Recv = Callable[[int], bytes]


@dataclass(frozen=True)
class Packet:
    request_id: int
    packet_type: int
    body: str = ""


def encode_packet(request_id: int, packet_type: int, body: str = "") -> bytes:
    payload = _HEADER.pack(request_id, packet_type) + body.encode("utf-8") + b"\x00\x00"
    return _INT.pack(len(payload)) + payload


def read_exact(recv: Recv, size: int) -> Optional[bytes]:
    """Call ``recv`` until ``size`` bytes arrive; ``None`` if the stream ends first."""

    buf = bytearray()
    while len(buf) < size:
        chunk = recv(size - len(buf))
        if not chunk:
            return None
        buf.extend(chunk)
    return bytes(buf)


def decode_payload(payload: bytes) -> Packet:
    if len(payload) < HEADER_SIZE:
        raise MalformedPacketError(f"packet payload too short: {len(payload)} bytes")
    request_id, packet_type = _HEADER.unpack_from(payload, 0)
    body = payload[8:-2].rstrip(b"\x00").decode("utf-8", errors="replace")
    return Packet(request_id=request_id, packet_type=packet_type, body=body)


def read_packet(recv: Recv) -> Optional[Packet]:
    """Read one packet from ``recv``.

    Returns ``None`` when the stream ends before a full packet is available
    (including a truncated length prefix). Raises ``MalformedPacketError``
    for a declared length that no valid packet can have.
    """

    prefix = read_exact(recv, _INT.size)
    if prefix is None:
        return None
    (size,) = _INT.unpack(prefix)
    if size < HEADER_SIZE or size > MAX_PACKET_SIZE:
        raise MalformedPacketError(f"invalid packet length {size}")
    payload = read_exact(recv, size)
    if payload is None:
        return None
    return decode_payload(payload)
