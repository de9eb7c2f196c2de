"""Backend for a locally launched Paper server driven through HeadlessMC."""

from __future__ import annotations

import logging
import subprocess
from collections import deque
from pathlib import Path
from typing import IO, Any, Dict, Optional

from ..errors import TransportError, UnsupportedOperationError
from ..rcon import RconClient
from .base import SERVICE_CONSOLE, BackendType, ServerControl
from .rcon_backend import RconBackend

logger = logging.getLogger(__name__)

DEFAULT_SERVERS_ROOT = Path("headlessmc-servers")
SERVER_COMMAND = ("java", "-Xmx2G", "-jar", "paper.jar", "--nogui")
LOG_TAIL_LINES = 100
STOP_TIMEOUT = 30.0


class HeadlessClientBackend(RconBackend, ServerControl):
    """Console commands use RCON when ``rcon_fallback`` is on.

    Player commands have no transport here: they are logged and return ``""``.
    """

    backend_type = BackendType.HEADLESS_CLIENT

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        timeout: float = 5.0,
        client: Optional[RconClient] = None,
        *,
        server_version: str = "1.21.5",
        servers_root: Path | str = DEFAULT_SERVERS_ROOT,
        rcon_fallback: bool = True,
    ) -> None:
        super().__init__(host, port, password, timeout=timeout, client=client)
        self.server_version = server_version
        self.servers_root = Path(servers_root)
        self.rcon_fallback = rcon_fallback
        self._process: Optional[subprocess.Popen] = None
        self._log_handle: Optional[IO[Any]] = None

    # ------------------------------------------------------------------ lifecycle
    def initialize(self) -> None:
        if self._initialized:
            return
        if self.rcon_fallback:
            self.rcon.connect()
        self._initialized = True

    def service_health(self) -> Dict[str, bool]:
        if not self.rcon_fallback:
            return {}
        return {SERVICE_CONSOLE: self.rcon.is_connected()}

    def send_command(self, command: str) -> str:
        if not self.rcon_fallback:
            raise UnsupportedOperationError("headless backend has no console connection (rcon_fallback is off)")
        return super().send_command(command)

    def execute_player_command(self, player: str, command: str) -> str:
        self._require_initialized()
        logger.warning("player commands are not supported by the headless backend: %s %r", player, command)
        return ""

    # ------------------------------------------------------------------ server control
    def server_dir(self, version: Optional[str] = None) -> Path:
        return self.servers_root / f"paper-{version or self.server_version}"

    @property
    def log_path(self) -> Path:
        return self.server_dir() / "pilaf-server.log"

    def launch_server(self, version: str) -> None:
        self.server_version = version
        if self.is_server_running():
            return
        directory = self.server_dir(version)
        if not directory.exists():
            logger.warning("no server directory at %s; download Paper %s first", directory, version)
            return

        self._log_handle = self.log_path.open("ab")
        try:
            self._process = subprocess.Popen(
                list(SERVER_COMMAND),
                cwd=str(directory),
                stdin=subprocess.PIPE,
                stdout=self._log_handle,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            self._close_log()
            raise TransportError(f"failed to launch server: {exc}") from exc
        logger.info("server process started (pid %s) in %s", self._process.pid, directory)

    def is_server_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def get_server_logs(self) -> str:
        path = self.log_path
        if not path.exists():
            return ""
        with path.open("r", encoding="utf-8", errors="replace") as fh:
            return "".join(deque(fh, maxlen=LOG_TAIL_LINES))

    def stop_server(self) -> None:
        process, self._process = self._process, None
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=STOP_TIMEOUT)
            except subprocess.TimeoutExpired:
                logger.warning("server did not exit in %ss; killing", STOP_TIMEOUT)
                process.kill()
                process.wait()
        self._close_log()

    def _close_log(self) -> None:
        handle, self._log_handle = self._log_handle, None
        if handle is not None:
            handle.close()
