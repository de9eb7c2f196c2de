"""Backend that talks to a running server purely over RCON."""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from ..rcon import RconClient
from .base import SERVICE_CONSOLE, Backend, BackendStateDict, BackendType

logger = logging.getLogger(__name__)

_COUNT_RE = re.compile(r"count:\s*(\d+)", re.IGNORECASE)


def player_command(player: str, command: str) -> str:
    return f"execute as {player} at {player} run {command.lstrip('/')}"


class RconBackend(Backend):
    backend_type = BackendType.RCON

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        timeout: float = 5.0,
        client: Optional[RconClient] = None,
    ) -> None:
        super().__init__()
        self.rcon = client or RconClient(host, port, password, timeout=timeout)

    def initialize(self) -> None:
        if self._initialized:
            return
        self.rcon.connect()
        self._initialized = True
        logger.info("RCON backend ready on %s:%s", self.rcon.host, self.rcon.port)

    def shutdown(self) -> None:
        self.rcon.disconnect()
        self._initialized = False

    def service_health(self) -> Dict[str, bool]:
        return {SERVICE_CONSOLE: self.rcon.is_connected()}

    def send_command(self, command: str) -> str:
        self._require_initialized()
        return self.rcon.execute_command(command.lstrip("/"))

    def execute_player_command(self, player: str, command: str) -> str:
        return self.send_command(player_command(player, command))

    def get_entities(self, player: str) -> BackendStateDict:
        # RCON cannot list entities; report how many are near the player
        raw = self.send_command(f"execute at {player} if entity @e[distance=..32,type=!minecraft:player]")
        match = _COUNT_RE.search(raw)
        return {"player": player, "count": int(match.group(1)) if match else 0, "raw": raw}

    def get_inventory(self, player: str) -> BackendStateDict:
        return {"player": player, "raw": self.send_command(f"data get entity {player} Inventory")}
