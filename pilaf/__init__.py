# pilaf/__init__.py
"""
Pilaf: scenario orchestration for Minecraft servers over RCON and the
Mineflayer bridge, with cross-backend consistency checking.
"""

from .backend import Backend, BackendType, build_backend
from .config import TestConfiguration, load_configuration
from .connection_manager import ConnectionManager
from .errors import PilafError
from .scenario import Scenario, ScenarioExecutor, ScenarioResult, load_scenario_file
from .state_manager import ComparisonResult, StateManager
from .testing import ConsistencyComparison, ConsistencyTester

__version__ = "0.4.0"

__all__ = [
    # Backends
    "Backend",
    "BackendType",
    "build_backend",
    "ConnectionManager",
    # Configuration
    "TestConfiguration",
    "load_configuration",
    # Scenarios
    "Scenario",
    "ScenarioExecutor",
    "ScenarioResult",
    "load_scenario_file",
    # State
    "StateManager",
    "ComparisonResult",
    # Consistency
    "ConsistencyTester",
    "ConsistencyComparison",
    "PilafError",
    "__version__",
]
