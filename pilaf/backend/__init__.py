"""Backend variants and the factory that selects between them."""

from .base import SERVICE_BRIDGE, SERVICE_CONSOLE, Backend, BackendStateDict, BackendType, ServerControl
from .bridge_backend import BridgeBackend
from .docker_backend import DockerServerBackend
from .factory import build_backend, resolve_backend_type
from .headless_backend import HeadlessClientBackend
from .rcon_backend import RconBackend

__all__ = [
    "Backend",
    "BackendStateDict",
    "BackendType",
    "BridgeBackend",
    "DockerServerBackend",
    "HeadlessClientBackend",
    "RconBackend",
    "SERVICE_BRIDGE",
    "SERVICE_CONSOLE",
    "ServerControl",
    "build_backend",
    "resolve_backend_type",
]
