"""Factory helpers for constructing backends from configuration."""

from __future__ import annotations

from typing import Any, Dict

from ..bridge import BridgeClient
from ..config import TestConfiguration
from ..errors import UnknownBackendError
from ..rcon import RconClient
from .base import Backend, BackendType
from .bridge_backend import BridgeBackend
from .docker_backend import DockerServerBackend
from .headless_backend import HeadlessClientBackend
from .rcon_backend import RconBackend

_ALIASES: Dict[str, BackendType] = {
    "rcon": BackendType.RCON,
    "real-server": BackendType.RCON,
    "mineflayer": BackendType.BRIDGE,
    "bridge": BackendType.BRIDGE,
    "real-client": BackendType.BRIDGE,
    "docker": BackendType.DOCKER_SERVER,
    "docker-server": BackendType.DOCKER_SERVER,
    "headlessmc": BackendType.HEADLESS_CLIENT,
    "headless": BackendType.HEADLESS_CLIENT,
    "headless-client": BackendType.HEADLESS_CLIENT,
}


def resolve_backend_type(value: Any) -> BackendType:
    """Map a configuration discriminator onto a ``BackendType``."""

    if isinstance(value, BackendType):
        return value
    name = str(value or "").strip().lower().replace("_", "-")
    try:
        return _ALIASES[name]
    except KeyError:
        raise UnknownBackendError(f"Unknown backend type: '{value}'") from None


def _rcon_client(config: TestConfiguration) -> RconClient:
    return RconClient(config.rcon_host, config.rcon_port, config.rcon_password, timeout=config.rcon_timeout)


def build_backend(
    config: TestConfiguration,
    *,
    http_client: Any | None = None,
) -> Backend:
    """Return an uninitialized backend for ``config.backend``."""

    backend_type = resolve_backend_type(config.backend)

    if backend_type is BackendType.RCON:
        return RconBackend(
            config.rcon_host,
            config.rcon_port,
            config.rcon_password,
            client=_rcon_client(config),
        )

    if backend_type is BackendType.BRIDGE:
        bridge = BridgeClient(config.bridge_url, timeout_seconds=config.bridge_timeout, client=http_client)
        return BridgeBackend(
            bridge,
            _rcon_client(config),
            verify_bridge=not config.skip_health_checks,
        )

    if backend_type is BackendType.DOCKER_SERVER:
        return DockerServerBackend(
            config.rcon_host,
            config.rcon_port,
            config.rcon_password,
            client=_rcon_client(config),
            server_version=config.server_version,
        )

    return HeadlessClientBackend(
        config.rcon_host,
        config.rcon_port,
        config.rcon_password,
        client=_rcon_client(config),
        server_version=config.server_version,
    )
