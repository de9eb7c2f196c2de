"""Lifecycle, service health and connected players for one backend."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Tuple

from .backend.base import Backend
from .config import TestConfiguration
from .errors import BackendNotInitializedError, ScenarioError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns one backend between ``initialize()`` and ``cleanup()``.

    ``initialize`` and ``cleanup`` are serialized on one lock; the health map
    and player set are guarded by a second lock so readers never block on a
    slow initialize.
    """

    def __init__(self, backend: Backend, config: Optional[TestConfiguration] = None) -> None:
        self.backend = backend
        self.config = config or TestConfiguration()
        self._lifecycle_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._health: Dict[str, bool] = {}
        self._players: Dict[str, bool] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise BackendNotInitializedError("connection manager is not initialized")

    # ------------------------------------------------------------------ lifecycle
    def initialize(self) -> None:
        with self._lifecycle_lock:
            if self._initialized:
                return
            self.backend.initialize()
            if self.config.skip_health_checks:
                health = {name: True for name in self.backend.service_health()}
            else:
                health = self.backend.service_health()
            with self._state_lock:
                self._health = dict(health)
            self._initialized = True
            for service, ok in health.items():
                if not ok:
                    logger.warning("service %s is not healthy", service)
            logger.info("connections ready: %s", health)

    def cleanup(self) -> None:
        with self._lifecycle_lock:
            if not self._initialized:
                return
            for player in self._player_snapshot():
                try:
                    self.backend.disconnect_player(player)
                except Exception as exc:
                    logger.warning("failed to disconnect %s during cleanup: %s", player, exc)
            with self._state_lock:
                self._players.clear()
            try:
                self.backend.shutdown()
            finally:
                self._initialized = False

    # ------------------------------------------------------------------ health
    def service_health(self) -> Dict[str, bool]:
        self._require_initialized()
        with self._state_lock:
            return dict(self._health)

    def is_service_healthy(self, service: str) -> bool:
        self._require_initialized()
        with self._state_lock:
            return self._health.get(service, False)

    def are_services_healthy(self) -> bool:
        self._require_initialized()
        with self._state_lock:
            return all(self._health.values())

    # ------------------------------------------------------------------ players
    def connected_players(self) -> Tuple[str, ...]:
        self._require_initialized()
        return self._player_snapshot()

    def is_player_connected(self, player: str) -> bool:
        self._require_initialized()
        return self._tracks(player)

    def _player_snapshot(self) -> Tuple[str, ...]:
        with self._state_lock:
            return tuple(self._players)

    def _tracks(self, player: str) -> bool:
        with self._state_lock:
            return player in self._players

    def connect_player(self, player: str) -> Dict:
        self._require_initialized()
        if self._tracks(player):
            raise ScenarioError(f"player '{player}' is already connected")
        result = self.backend.connect_player(player)
        with self._state_lock:
            self._players[player] = True
        logger.info("player %s connected", player)
        return result

    def disconnect_player(self, player: str) -> Dict:
        self._require_initialized()
        if not self._tracks(player):
            logger.debug("disconnect for unknown player %s ignored", player)
            return {"status": "not_connected"}
        try:
            return self.backend.disconnect_player(player)
        finally:
            with self._state_lock:
                self._players.pop(player, None)
