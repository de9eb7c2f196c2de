"""Scenario model, loading, and execution."""

from .executor import AssertionFailed, ScenarioExecutor
from .loader import load_scenario_file, scenario_from_mapping
from .model import Action, ActionType, Scenario
from .results import ExecutionState, ScenarioResult, StepResult
from .variables import VariableStore

__all__ = [
    "Action",
    "ActionType",
    "AssertionFailed",
    "ExecutionState",
    "Scenario",
    "ScenarioExecutor",
    "ScenarioResult",
    "StepResult",
    "VariableStore",
    "load_scenario_file",
    "scenario_from_mapping",
]
