"""Backend capability surface shared by every Pilaf backend variant."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import BackendNotInitializedError, UnsupportedOperationError
from ..state_manager import canonical_json


BackendStateDict = Dict[str, Any]

SERVICE_CONSOLE = "console-protocol"
SERVICE_BRIDGE = "bridge"


class BackendType(str, Enum):
    """Closed set of backend variants, resolved once from configuration."""

    RCON = "rcon"
    BRIDGE = "bridge"
    DOCKER_SERVER = "docker-server"
    HEADLESS_CLIENT = "headless-client"

    @property
    def containerized(self) -> bool:
        return self is BackendType.DOCKER_SERVER


class Backend(ABC):
    """Portable capability surface used by the scenario executor.

    Subclasses delegate to the protocol clients they own. Everything except
    ``initialize`` fails fast with ``BackendNotInitializedError`` until
    ``initialize`` succeeds.
    """

    backend_type: BackendType

    def __init__(self) -> None:
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise BackendNotInitializedError(f"{self.backend_type.value} backend is not initialized")

    # ------------------------------------------------------------------ core surface
    @abstractmethod
    def initialize(self) -> None:
        """Establish the underlying transports."""

    @abstractmethod
    def shutdown(self) -> None:
        """Release transports; safe to call more than once."""

    @abstractmethod
    def send_command(self, command: str) -> str:
        """Run a console command and return its textual response."""

    @abstractmethod
    def execute_player_command(self, player: str, command: str) -> str:
        """Run a command as ``player``."""

    @abstractmethod
    def get_entities(self, player: str) -> BackendStateDict:
        """Entities visible to ``player``."""

    @abstractmethod
    def get_inventory(self, player: str) -> BackendStateDict:
        """Inventory contents of ``player``."""

    @abstractmethod
    def service_health(self) -> Dict[str, bool]:
        """Probe each owned service once, keyed by service name."""

    # ------------------------------------------------------------------ players
    def connect_player(self, player: str) -> BackendStateDict:
        raise UnsupportedOperationError(f"{self.backend_type.value} backend cannot connect players")

    def disconnect_player(self, player: str) -> BackendStateDict:
        raise UnsupportedOperationError(f"{self.backend_type.value} backend cannot disconnect players")

    # ------------------------------------------------------------------ helpers built on the console
    def give_item(self, player: str, item: str, count: int = 1) -> str:
        return self.send_command(f"give {player} {item} {int(count)}")

    def spawn_entity(self, entity: str, x: Any = "~", y: Any = "~", z: Any = "~", name: Optional[str] = None) -> str:
        command = f"summon {entity} {x} {y} {z}"
        if name:
            command += ' {CustomName:\'"%s"\'}' % name
        return self.send_command(command)

    def make_operator(self, player: str) -> str:
        return self.send_command(f"op {player}")

    def move_player(self, player: str, x: Any, y: Any, z: Any) -> Any:
        return self.send_command(f"tp {player} {x} {y} {z}")

    def send_chat(self, player: str, message: str) -> Any:
        return self.send_command("tellraw @a " + json.dumps({"text": f"<{player}> {message}"}))

    def equip_item(self, player: str, item: str, slot: str = "hand") -> Any:
        if slot in {"hand", "mainhand"}:
            target = "weapon.mainhand"
        elif slot == "offhand":
            target = "weapon.offhand"
        else:
            target = f"armor.{slot}"
        return self.send_command(f"item replace entity {player} {target} with {item}")

    def get_player_position(self, player: str) -> BackendStateDict:
        return {"player": player, "raw": self.send_command(f"data get entity {player} Pos")}

    def get_player_health(self, player: str) -> BackendStateDict:
        return {"player": player, "raw": self.send_command(f"data get entity {player} Health")}

    def get_player_equipment(self, player: str) -> BackendStateDict:
        return {"player": player, "raw": self.send_command(f"data get entity {player} equipment")}

    def use_item(self, player: str, target: str = "") -> BackendStateDict:
        raise UnsupportedOperationError(f"{self.backend_type.value} backend cannot use items as a player")

    def entity_exists(self, name: str, player: Optional[str] = None) -> bool:
        # "Test passed, count: N" / "Test failed"
        response = self.send_command(f"execute if entity @e[name={name}]")
        return "passed" in response.lower()

    def player_has_item(self, player: str, item: str) -> bool:
        wanted = item.split(":", 1)[-1]
        return wanted in canonical_json(self.get_inventory(player))

    def clear_entities(self, entity_type: Optional[str] = None) -> str:
        selector = f"@e[type={entity_type}]" if entity_type else "@e[type=!minecraft:player]"
        return self.send_command(f"kill {selector}")


class ServerControl(ABC):
    """Extension implemented by variants that own a server process.

    Used during consistency-run setup only; callers test with ``isinstance``.
    """

    @abstractmethod
    def launch_server(self, version: str) -> None:
        """Start the server for ``version``."""

    @abstractmethod
    def is_server_running(self) -> bool:
        """True while the server process/container is alive."""

    @abstractmethod
    def get_server_logs(self) -> str:
        """Recent server log output."""

    @abstractmethod
    def stop_server(self) -> None:
        """Stop the server process/container."""
