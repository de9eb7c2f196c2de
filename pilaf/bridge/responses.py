"""Helpers for bridge HTTP error mapping and response parsing."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import TransportError

logger = logging.getLogger(__name__)

_PAIR_RE = re.compile(
    r'"(?P<key>(?:[^"\\]|\\.)*)"\s*:\s*'
    r'(?P<value>"(?:[^"\\]|\\.)*"|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null|[A-Za-z_][\w.\-]*)'
)


@dataclass(slots=True, eq=False)
class BridgeError(TransportError):
    """Structured error raised by the bridge client."""

    message: str
    code: str = "bridge_http_error"
    status: Optional[int] = None
    body: Optional[str] = None

    def __post_init__(self) -> None:
        TransportError.__init__(self, self.message)


def transport_error(exc: Exception) -> BridgeError:
    return BridgeError(f"bridge transport failed: {exc}", code="bridge_transport_error")


def _first_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``text``, string-aware."""

    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    return None


def _scalar(token: str) -> Any:
    if token.startswith('"'):
        try:
            return json.loads(token)
        except ValueError:
            return token.strip('"')
    try:
        return json.loads(token)
    except ValueError:
        return token


def lenient_parse(text: str | None) -> Dict[str, Any]:
    """Best-effort decode of a bridge body that is not valid JSON.

    Tries strict JSON, then the first balanced object in the text, then
    falls back to harvesting ``"key": value`` pairs (quoted or bare values).
    Never raises; returns ``{}`` when nothing useful is found.
    """

    if not text or not text.strip():
        return {}
    try:
        data = json.loads(text)
    except ValueError:
        data = None
    else:
        return data if isinstance(data, dict) else {"data": data}

    span = _first_object(text)
    if span is not None:
        try:
            data = json.loads(span)
        except ValueError:
            data = None
        if isinstance(data, dict):
            return data

    partial: Dict[str, Any] = {}
    for match in _PAIR_RE.finditer(text):
        partial.setdefault(match.group("key"), _scalar(match.group("value")))
    if not partial:
        logger.debug("bridge body not parseable: %.200s", text)
    return partial


def parse_response_json(response: Any) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return lenient_parse(getattr(response, "text", None))
    if isinstance(data, dict):
        return data
    return {"data": data}


def coerce_success(response: Any) -> Dict[str, Any]:
    status = getattr(response, "status_code", None) or 200
    if status >= 400:
        body = getattr(response, "text", None)
        raise BridgeError(
            f"bridge returned HTTP {status}: {body}",
            code="bridge_http_status",
            status=status,
            body=body,
        )
    return parse_response_json(response)
