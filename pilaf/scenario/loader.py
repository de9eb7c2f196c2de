"""Scenario file loading (YAML or JSON)."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Tuple

from ..config import read_mapping_file
from ..errors import ScenarioError
from .model import Action, Scenario


def _actions(data: Mapping[str, Any], phase: str) -> Tuple[Action, ...]:
    raw = data.get(phase)
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ScenarioError(f"'{phase}' must be a list of actions")
    actions = []
    for idx, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ScenarioError(f"{phase}[{idx}] must be a mapping, got {type(item).__name__}")
        if not isinstance(item.get("action"), str) or not item["action"].strip():
            raise ScenarioError(f"{phase}[{idx}] is missing its 'action' tag")
        actions.append(Action.from_mapping(item, index=idx))
    return tuple(actions)


def scenario_from_mapping(data: Mapping[str, Any]) -> Scenario:
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ScenarioError("scenario requires a non-empty 'name'")
    return Scenario(
        name=name,
        description=str(data.get("description") or ""),
        setup=_actions(data, "setup"),
        steps=_actions(data, "steps"),
        cleanup=_actions(data, "cleanup"),
    )


def load_scenario_file(path: str | Path) -> Scenario:
    """Parse a scenario file; configuration problems surface as ``ScenarioError``."""

    try:
        data = read_mapping_file(path)
    except ValueError as exc:
        raise ScenarioError(str(exc)) from exc
    return scenario_from_mapping(data)
