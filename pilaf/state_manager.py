"""Snapshot storage and JSON-patch diffs for scenario state."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import jsonpatch

logger = logging.getLogger(__name__)

EMPTY_SNAPSHOT = "{}"


def canonical_json(value: Any) -> str:
    """Stable textual form used for snapshots: sorted keys, compact."""

    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class ComparisonResult:
    before_json: str
    after_json: str
    diff: List[Dict[str, Any]] = field(default_factory=list)
    before_state: Any = None
    after_state: Any = None

    @property
    def has_changes(self) -> bool:
        # Textual inequality only; independent of whether a diff was produced.
        return self.before_json != self.after_json

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_changes": self.has_changes,
            "diff": list(self.diff),
            "before": self.before_state,
            "after": self.after_state,
        }


class StateManager:
    """
    Keeps immutable snapshots keyed by name.

    ``store`` serializes the value immediately, so later mutation of the live
    object never leaks into the snapshot. Values json cannot serialize are
    stored as their ``str()``.
    """

    def __init__(self) -> None:
        self._snapshots: Dict[str, str] = {}
        self._lock = threading.Lock()

    def store(self, key: str, value: Any) -> None:
        try:
            text = canonical_json(value)
        except (TypeError, ValueError, RecursionError) as exc:
            logger.debug("state %r not JSON-serializable (%s); storing str()", key, exc)
            text = json.dumps(str(value))
        with self._lock:
            self._snapshots[key] = text

    def retrieve(self, key: str) -> Any:
        with self._lock:
            text = self._snapshots.get(key)
        if text is None:
            return None
        return json.loads(text)

    def retrieve_as_json(self, key: str) -> str:
        with self._lock:
            return self._snapshots.get(key, EMPTY_SNAPSHOT)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._snapshots

    def remove(self, key: str) -> None:
        with self._lock:
            self._snapshots.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._snapshots)

    def size(self) -> int:
        with self._lock:
            return len(self._snapshots)

    def clear(self) -> None:
        with self._lock:
            self._snapshots.clear()

    def compare(self, key_before: str, key_after: str) -> ComparisonResult:
        before_json = self.retrieve_as_json(key_before)
        after_json = self.retrieve_as_json(key_after)
        before = json.loads(before_json)
        after = json.loads(after_json)
        return ComparisonResult(
            before_json=before_json,
            after_json=after_json,
            diff=make_diff(before, after),
            before_state=before,
            after_state=after,
        )

    def summary(self, comparison: Optional[ComparisonResult] = None) -> str:
        if comparison is None:
            return f"{self.size()} stored state(s): {', '.join(self.keys()) or '-'}"
        if not comparison.has_changes:
            return "No changes detected"
        return f"{len(comparison.diff)} change(s) detected"


def make_diff(before: Any, after: Any) -> List[Dict[str, Any]]:
    """RFC 6902 operations turning ``before`` into ``after``; ``[]`` on failure."""

    try:
        return list(jsonpatch.make_patch(before, after))
    except Exception as exc:  # patch generation is display-only
        logger.warning("could not build state diff: %s", exc)
        return []
