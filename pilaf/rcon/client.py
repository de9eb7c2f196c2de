"""Blocking RCON client used by the console-protocol backends."""

from __future__ import annotations

import itertools
import logging
import socket
import threading
from typing import Any, Callable, Optional

from ..errors import AuthenticationError, MalformedPacketError, NotAuthenticatedError, TransportError
from .packet import (
    AUTH_FAILURE_ID,
    SERVERDATA_AUTH,
    SERVERDATA_EXECCOMMAND,
    encode_packet,
    read_packet,
)

logger = logging.getLogger(__name__)

NO_RESPONSE = "(no response)"

SocketFactory = Callable[[tuple, float], Any]


class RconClient:
    """One persistent, authenticated RCON connection.

    Commands are serialized on an internal lock; the protocol itself allows
    only one outstanding request per connection.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        timeout: float = 5.0,
        socket_factory: Optional[SocketFactory] = None,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.timeout = float(timeout)
        self._password = password
        self._socket_factory = socket_factory or socket.create_connection
        self._sock: Any = None
        self._authenticated = False
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def __enter__(self) -> "RconClient":
        self.connect()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.disconnect()

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def is_connected(self) -> bool:
        return self._sock is not None and self._authenticated

    def _next_id(self) -> int:
        return next(self._ids)

    # ------------------------------------------------------------------ lifecycle
    def connect(self) -> None:
        """Open the socket and authenticate; raises on any failure."""

        self.disconnect()
        try:
            sock = self._socket_factory((self.host, self.port), self.timeout)
            sock.settimeout(self.timeout)
        except OSError as exc:
            raise TransportError(f"RCON connect to {self.host}:{self.port} failed: {exc}") from exc
        self._sock = sock

        auth_id = self._next_id()
        try:
            sock.sendall(encode_packet(auth_id, SERVERDATA_AUTH, self._password))
            response = read_packet(sock.recv)
        except (OSError, MalformedPacketError) as exc:
            self.disconnect()
            raise AuthenticationError(f"RCON authentication failed: {exc}") from exc

        if response is None:
            self.disconnect()
            raise AuthenticationError("RCON server closed the connection during authentication")

        # Any id other than the failure sentinel counts as success, even one
        # that does not echo auth_id.
        if response.request_id == auth_id or response.request_id != AUTH_FAILURE_ID:
            self._authenticated = True
            logger.info("RCON authenticated with %s:%s", self.host, self.port)
            return

        self.disconnect()
        raise AuthenticationError("RCON authentication rejected: wrong password")

    def disconnect(self) -> None:
        sock, self._sock = self._sock, None
        self._authenticated = False
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            logger.debug("error closing RCON socket: %s", exc)

    # ------------------------------------------------------------------ commands
    def execute_command(self, command: str) -> str:
        """Run ``command`` and return the response body.

        Returns ``NO_RESPONSE`` for an acknowledged command with an empty
        body and ``""`` when the exchange fails at the transport level.
        """

        if not self._authenticated or self._sock is None:
            raise NotAuthenticatedError("not authenticated")

        with self._lock:
            request_id = self._next_id()
            try:
                self._sock.sendall(encode_packet(request_id, SERVERDATA_EXECCOMMAND, command))
                response = read_packet(self._sock.recv)
            except (OSError, MalformedPacketError) as exc:
                logger.warning("RCON command %r failed: %s", command, exc)
                return ""

        if response is None:
            logger.warning("RCON connection closed before a response to %r", command)
            return ""
        if not response.body:
            return NO_RESPONSE
        return response.body
