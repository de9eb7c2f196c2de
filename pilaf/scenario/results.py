"""Execution results for one scenario run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ExecutionState(str, Enum):
    IDLE = "idle"
    RUNNING_SETUP = "running-setup"
    RUNNING_STEPS = "running-steps"
    RUNNING_CLEANUP = "running-cleanup"
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class StepResult:
    phase: str
    name: str
    action: str
    success: bool = True
    skipped: bool = False
    response: Any = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "name": self.name,
            "action": self.action,
            "success": self.success,
            "skipped": self.skipped,
            "response": self.response,
            "error": self.error,
            "duration_ms": round(self.duration_ms, 3),
        }


@dataclass
class ScenarioResult:
    scenario_name: str
    success: bool = False
    message: str = ""
    error: Optional[BaseException] = None
    steps: List[StepResult] = field(default_factory=list)
    execution_time_ms: float = 0.0
    assertions_passed: int = 0
    assertions_failed: int = 0
    skipped_actions: List[str] = field(default_factory=list)

    @property
    def actions_executed(self) -> int:
        return sum(1 for s in self.steps if not s.skipped)

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return f"{type(self.error).__name__}: {self.error}"

    def phase_steps(self, phase: str) -> List[StepResult]:
        return [s for s in self.steps if s.phase == phase]

    @classmethod
    def failed(cls, scenario_name: str, message: str, error: Optional[BaseException] = None) -> "ScenarioResult":
        return cls(scenario_name=scenario_name, success=False, message=message, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario_name,
            "success": self.success,
            "message": self.message,
            "error": self.error_message,
            "execution_time_ms": round(self.execution_time_ms, 3),
            "actions_executed": self.actions_executed,
            "assertions_passed": self.assertions_passed,
            "assertions_failed": self.assertions_failed,
            "skipped_actions": list(self.skipped_actions),
            "steps": [s.to_dict() for s in self.steps],
        }
