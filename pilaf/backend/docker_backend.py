"""RCON backend whose server runs in a local docker container."""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional

from ..errors import TransportError
from ..rcon import RconClient
from .base import BackendType, ServerControl
from .rcon_backend import RconBackend

logger = logging.getLogger(__name__)

DEFAULT_IMAGE = "papermc/paper"
GAME_INTERNAL_PORT = 25565
RCON_INTERNAL_PORT = 25575
LOG_TAIL_LINES = 100
DOCKER_CALL_TIMEOUT = 60.0


def container_name(version: str) -> str:
    return f"pilaf-paper-{version}"


def _docker(args: List[str], timeout: float = DOCKER_CALL_TIMEOUT) -> subprocess.CompletedProcess:
    """Run ``docker <args>``; a missing docker binary becomes a TransportError."""

    try:
        return subprocess.run(
            ["docker", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise TransportError("docker executable not found") from exc
    except subprocess.TimeoutExpired as exc:
        raise TransportError(f"docker {' '.join(args[:1])} timed out after {timeout}s") from exc


class DockerServerBackend(RconBackend, ServerControl):
    backend_type = BackendType.DOCKER_SERVER

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        timeout: float = 5.0,
        client: Optional[RconClient] = None,
        *,
        server_version: str = "1.21.5",
        game_port: int = GAME_INTERNAL_PORT,
        image: str = DEFAULT_IMAGE,
    ) -> None:
        super().__init__(host, port, password, timeout=timeout, client=client)
        self.server_version = server_version
        self.game_port = int(game_port)
        self.image = image
        self._password = password

    @property
    def container(self) -> str:
        return container_name(self.server_version)

    def launch_server(self, version: str) -> None:
        self.server_version = version
        check = _docker(["--version"], timeout=10.0)
        if check.returncode != 0:
            raise TransportError("docker not available")

        if self.is_server_running():
            logger.info("container %s already running", self.container)
            return

        logger.info("launching %s:%s as %s", self.image, version, self.container)
        result = _docker(
            [
                "run", "-d",
                "--name", self.container,
                "-p", f"{self.game_port}:{GAME_INTERNAL_PORT}",
                "-p", f"{self.rcon.port}:{RCON_INTERNAL_PORT}",
                "-e", "EULA=TRUE",
                "-e", f"RCON_PASSWORD={self._password}",
                f"{self.image}:{version}",
            ]
        )
        if result.returncode != 0:
            raise TransportError(f"docker run failed: {result.stderr.strip() or result.stdout.strip()}")

    def is_server_running(self) -> bool:
        try:
            result = _docker(["ps", "--filter", f"name={self.container}", "--format", "{{.Status}}"], timeout=10.0)
        except TransportError as exc:
            logger.debug("docker ps failed: %s", exc)
            return False
        return result.returncode == 0 and bool(result.stdout.strip())

    def get_server_logs(self) -> str:
        try:
            result = _docker(["logs", self.container, "--tail", str(LOG_TAIL_LINES)], timeout=10.0)
        except TransportError as exc:
            logger.warning("could not read logs for %s: %s", self.container, exc)
            return ""
        # the server writes most of its log to stderr
        return (result.stdout or "") + (result.stderr or "")

    def stop_server(self) -> None:
        for args in (["stop", self.container], ["rm", self.container]):
            try:
                result = _docker(args)
            except TransportError as exc:
                logger.warning("docker %s failed: %s", args[0], exc)
                return
            if result.returncode != 0:
                logger.warning("docker %s %s: %s", args[0], self.container, result.stderr.strip())
