"""In-memory backends and RCON peers shared by the test modules."""
from __future__ import annotations

import socket
import threading
from typing import Callable, Dict, List, Optional

from pilaf.backend.base import SERVICE_CONSOLE, Backend, BackendType
from pilaf.rcon.packet import SERVERDATA_AUTH, encode_packet, read_packet


class StubBackend(Backend):
    """Console backend whose replies come from ``reply(command)``."""

    backend_type = BackendType.RCON

    def __init__(
        self,
        reply: Optional[Callable[[str], str]] = None,
        *,
        fail_on: Optional[str] = None,
        fail_initialize: bool = False,
    ) -> None:
        super().__init__()
        self.reply = reply or (lambda command: "")
        self.fail_on = fail_on
        self.fail_initialize = fail_initialize
        self.commands: List[str] = []
        self.connected: List[str] = []
        self.disconnected: List[str] = []
        self.shutdowns = 0

    def initialize(self) -> None:
        if self.fail_initialize:
            raise ConnectionRefusedError("stub refused")
        self._initialized = True

    def shutdown(self) -> None:
        self.shutdowns += 1
        self._initialized = False

    def service_health(self) -> Dict[str, bool]:
        return {SERVICE_CONSOLE: self._initialized}

    def send_command(self, command: str) -> str:
        self._require_initialized()
        self.commands.append(command)
        if self.fail_on and self.fail_on in command:
            raise RuntimeError(f"command rejected: {command}")
        return self.reply(command)

    def execute_player_command(self, player: str, command: str) -> str:
        return self.send_command(f"execute as {player} run {command}")

    def get_entities(self, player: str) -> Dict:
        self._require_initialized()
        return {"player": player, "entities": [{"name": "zombie", "distance": 3}]}

    def get_inventory(self, player: str) -> Dict:
        self._require_initialized()
        return {"player": player, "items": [{"name": "diamond", "count": 1}]}

    def connect_player(self, player: str) -> Dict:
        self._require_initialized()
        self.connected.append(player)
        return {"status": "connected"}

    def disconnect_player(self, player: str) -> Dict:
        self._require_initialized()
        self.disconnected.append(player)
        return {"status": "disconnected"}


def echo_last_word(command: str) -> str:
    """``say hi`` -> ``hi``."""
    return command.split()[-1] if command.split() else ""


class FakeRconServer:
    """Loopback RCON peer answering one connection on a background thread."""

    def __init__(self, password: str = "secret", *, auth_reply_id: Optional[int] = None, reply: str = "ok") -> None:
        self.password = password
        self.auth_reply_id = auth_reply_id
        self.reply = reply
        self.received: List[str] = []
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(1)
        self.port = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _ = self._sock.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5)
            while True:
                try:
                    packet = read_packet(conn.recv)
                except OSError:
                    return
                if packet is None:
                    return
                if packet.packet_type == SERVERDATA_AUTH:
                    if self.auth_reply_id is not None:
                        reply_id = self.auth_reply_id
                    else:
                        reply_id = packet.request_id if packet.body == self.password else -1
                    conn.sendall(encode_packet(reply_id, 2, ""))
                    continue
                self.received.append(packet.body)
                conn.sendall(encode_packet(packet.request_id, 0, self.reply))

    def close(self) -> None:
        self._sock.close()
        self._thread.join(timeout=2)
