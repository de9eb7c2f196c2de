"""HTTP client for the Mineflayer bridge process."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from .responses import BridgeError, coerce_success, transport_error

logger = logging.getLogger(__name__)

CONNECTED_STATUSES = frozenset({"connected", "already_connected"})


class BridgeClient:
    """Client for the bridge's JSON endpoints, one bot per ``username``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not isinstance(base_url, str) or not base_url.strip():
            raise ValueError("base_url must be a non-empty string")
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = float(timeout_seconds)
        self._client = client
        self._owns_client = False

    # ------------------------------------------------------------------ helpers
    def _ensure_client(self) -> httpx.Client:
        if self._client is not None:
            return self._client
        self._client = httpx.Client(base_url=self.base_url, timeout=self.timeout_seconds)
        self._owns_client = True
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
        self._client = None
        self._owns_client = False

    def __enter__(self) -> "BridgeClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request_json(
        self, method: str, path: str, payload: Mapping[str, Any] | None = None
    ) -> Dict[str, Any]:
        client = self._ensure_client()
        kwargs: Dict[str, Any] = {"timeout": self.timeout_seconds}
        if payload is not None:
            kwargs["json"] = dict(payload)
        try:
            response = client.request(method.upper(), self._url(path), **kwargs)
        except httpx.HTTPError as exc:
            raise transport_error(exc) from exc
        return coerce_success(response)

    def _post(self, path: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self._request_json("post", path, payload)

    def _get(self, path: str) -> Dict[str, Any]:
        return self._request_json("get", path)

    @staticmethod
    def _segment(value: str) -> str:
        return quote(str(value), safe="")

    # ------------------------------------------------------------------ lifecycle
    def is_healthy(self) -> bool:
        try:
            data = self._get("/health")
        except Exception as exc:
            logger.debug("bridge health check failed: %s", exc)
            return False
        return data.get("status") == "ok"

    def connect(self, username: str, host: str | None = None, port: int | None = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"username": username}
        if host:
            payload["host"] = host
        if port is not None:
            payload["port"] = int(port)
        data = self._post("/connect", payload)
        status = data.get("status")
        if status not in CONNECTED_STATUSES:
            raise BridgeError(
                f"bridge could not connect '{username}': {data.get('error') or status}",
                code="bridge_connect_failed",
                body=str(data),
            )
        if status == "already_connected":
            logger.info("player %s already connected on bridge", username)
        return data

    def disconnect(self, username: str) -> Dict[str, Any]:
        return self._post("/disconnect", {"username": username})

    # ------------------------------------------------------------------ actions
    def command(self, username: str, command: str) -> Dict[str, Any]:
        return self._post("/command", {"username": username, "command": command})

    def chat(self, username: str, message: str) -> Dict[str, Any]:
        return self._post("/chat", {"username": username, "message": message})

    def move(self, username: str, x: float, y: float, z: float) -> Dict[str, Any]:
        return self._post("/move", {"username": username, "x": x, "y": y, "z": z})

    def equip(self, username: str, item: str, slot: str = "hand") -> Dict[str, Any]:
        return self._post("/equip", {"username": username, "item": item, "slot": slot})

    def use(self, username: str, target: str) -> Dict[str, Any]:
        return self._post("/use", {"username": username, "target": target})

    # ------------------------------------------------------------------ queries
    def get_position(self, username: str) -> Dict[str, Any]:
        return self._get(f"/position/{self._segment(username)}")

    def get_health(self, username: str) -> Dict[str, Any]:
        return self._get(f"/health/{self._segment(username)}")

    def get_inventory(self, username: str) -> Dict[str, Any]:
        return self._get(f"/inventory/{self._segment(username)}")

    def get_entities(self, username: str) -> Dict[str, Any]:
        return self._get(f"/entities/{self._segment(username)}")

    def get_entity(self, name: str, username: str) -> Dict[str, Any]:
        return self._get(f"/entity/{self._segment(name)}/{self._segment(username)}")

    def get_equipment(self, username: str) -> Dict[str, Any]:
        return self._get(f"/equipment/{self._segment(username)}")
