"""Backend driving real bot clients through the Mineflayer bridge."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..bridge import BridgeClient
from ..errors import TransportError, UnsupportedOperationError
from ..rcon import RconClient
from .base import SERVICE_BRIDGE, SERVICE_CONSOLE, Backend, BackendStateDict, BackendType

logger = logging.getLogger(__name__)


def _response_text(data: BackendStateDict) -> str:
    for key in ("response", "result", "message"):
        value = data.get(key)
        if value not in (None, ""):
            return str(value)
    return str(data.get("status") or "")


class BridgeBackend(Backend):
    """Player actions go through the bridge; console commands through RCON."""

    backend_type = BackendType.BRIDGE

    def __init__(
        self,
        bridge: BridgeClient,
        rcon: Optional[RconClient] = None,
        *,
        server_host: Optional[str] = None,
        server_port: Optional[int] = None,
        verify_bridge: bool = True,
    ) -> None:
        super().__init__()
        self.bridge = bridge
        self.rcon = rcon
        self.server_host = server_host
        self.server_port = server_port
        self.verify_bridge = verify_bridge

    def initialize(self) -> None:
        if self._initialized:
            return
        if self.verify_bridge and not self.bridge.is_healthy():
            raise TransportError(f"bridge at {self.bridge.base_url} is not healthy")
        if self.rcon is not None:
            self.rcon.connect()
        self._initialized = True
        logger.info("bridge backend ready (%s)", self.bridge.base_url)

    def shutdown(self) -> None:
        if self.rcon is not None:
            self.rcon.disconnect()
        self.bridge.close()
        self._initialized = False

    def service_health(self) -> Dict[str, bool]:
        health = {SERVICE_BRIDGE: self.bridge.is_healthy()}
        if self.rcon is not None:
            health[SERVICE_CONSOLE] = self.rcon.is_connected()
        return health

    # ------------------------------------------------------------------ surface
    def send_command(self, command: str) -> str:
        self._require_initialized()
        if self.rcon is None:
            raise UnsupportedOperationError("bridge backend has no console connection configured")
        return self.rcon.execute_command(command.lstrip("/"))

    def execute_player_command(self, player: str, command: str) -> str:
        self._require_initialized()
        return _response_text(self.bridge.command(player, command))

    def get_entities(self, player: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.get_entities(player)

    def get_inventory(self, player: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.get_inventory(player)

    def connect_player(self, player: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.connect(player, self.server_host, self.server_port)

    def disconnect_player(self, player: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.disconnect(player)

    # ------------------------------------------------------------------ bot-native helpers
    def move_player(self, player: str, x: Any, y: Any, z: Any) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.move(player, x, y, z)

    def send_chat(self, player: str, message: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.chat(player, message)

    def equip_item(self, player: str, item: str, slot: str = "hand") -> BackendStateDict:
        self._require_initialized()
        return self.bridge.equip(player, item, slot)

    def get_player_position(self, player: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.get_position(player)

    def get_player_health(self, player: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.get_health(player)

    def get_player_equipment(self, player: str) -> BackendStateDict:
        self._require_initialized()
        return self.bridge.get_equipment(player)

    def use_item(self, player: str, target: str = "") -> BackendStateDict:
        self._require_initialized()
        return self.bridge.use(player, target)

    def entity_exists(self, name: str, player: Optional[str] = None) -> bool:
        if self.rcon is not None or not player:
            return super().entity_exists(name, player)
        self._require_initialized()
        entities = self.bridge.get_entities(player).get("entities") or []
        return any(name in (str(e.get("name") or ""), str(e.get("customName") or "")) for e in entities)
