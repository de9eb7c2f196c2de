"""Runs one parsed scenario against one backend."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

from ..backend.base import Backend
from ..config import TestConfiguration
from ..connection_manager import ConnectionManager
from ..errors import ScenarioError
from ..state_manager import StateManager, canonical_json
from .model import Action, ActionType, Scenario
from .results import ExecutionState, ScenarioResult, StepResult
from .variables import VariableStore, stringify

logger = logging.getLogger(__name__)

Params = Dict[str, Any]


class AssertionFailed(ScenarioError):
    """Raised by assertion actions whose check does not hold."""


def _require(params: Params, key: str, action: str) -> Any:
    value = params.get(key)
    if value is None or value == "":
        raise ScenarioError(f"{action} requires '{key}'")
    return value


def _milliseconds(value: Any) -> int:
    if isinstance(value, bool):
        raise ScenarioError("wait duration must be milliseconds")
    try:
        delay = int(float(value))
    except (TypeError, ValueError):
        raise ScenarioError("wait duration must be milliseconds") from None
    if delay < 0:
        raise ScenarioError("wait duration must be milliseconds")
    return delay


def _coords(params: Params, action: str) -> tuple:
    for key in ("destination", "location", "position"):
        value = params.get(key)
        if isinstance(value, (list, tuple)) and len(value) == 3:
            return tuple(value)
        if isinstance(value, str) and len(value.split()) == 3:
            return tuple(value.split())
    if all(k in params for k in ("x", "y", "z")):
        return params["x"], params["y"], params["z"]
    raise ScenarioError(f"{action} requires x/y/z or a 3-element destination")


class ScenarioExecutor:
    """
    Drives ``idle -> running-setup -> running-steps -> running-cleanup ->
    passed|failed`` for a scenario.

    The first failing setup or step action ends its phase and skips the rest
    of the main body; cleanup always runs and never changes the outcome.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        config: Optional[TestConfiguration] = None,
        state: Optional[StateManager] = None,
        connections: Optional[ConnectionManager] = None,
        settle_delay_ms: Optional[int] = None,
        manage_lifecycle: bool = True,
    ) -> None:
        self.backend = backend
        self.config = config or TestConfiguration()
        self.state = state if state is not None else StateManager()
        self.connections = connections or ConnectionManager(backend, self.config)
        self.settle_delay_ms = self.config.settle_delay_ms if settle_delay_ms is None else int(settle_delay_ms)
        self.manage_lifecycle = manage_lifecycle
        self.status = ExecutionState.IDLE
        self._last_response: Any = None
        self._handlers: Dict[ActionType, Callable[[Params, VariableStore, ScenarioResult], Any]] = {
            ActionType.CONNECT_PLAYER: self._connect_player,
            ActionType.DISCONNECT_PLAYER: self._disconnect_player,
            ActionType.EXECUTE_COMMAND: self._execute_command,
            ActionType.EXECUTE_PLAYER_COMMAND: self._execute_player_command,
            ActionType.GET_ENTITIES: lambda p, v, r: self.backend.get_entities(self._player(p)),
            ActionType.GET_INVENTORY: lambda p, v, r: self.backend.get_inventory(self._player(p)),
            ActionType.GET_PLAYER_POSITION: lambda p, v, r: self.backend.get_player_position(self._player(p)),
            ActionType.GET_PLAYER_HEALTH: lambda p, v, r: self.backend.get_player_health(self._player(p)),
            ActionType.GIVE_ITEM: self._give_item,
            ActionType.SPAWN_ENTITY: self._spawn_entity,
            ActionType.EQUIP_ITEM: self._equip_item,
            ActionType.MOVE_PLAYER: self._move_player,
            ActionType.SEND_CHAT: self._send_chat,
            ActionType.MAKE_OPERATOR: lambda p, v, r: self.backend.make_operator(self._player(p)),
            ActionType.GET_PLAYER_EQUIPMENT: lambda p, v, r: self.backend.get_player_equipment(self._player(p)),
            ActionType.USE_ITEM: self._use_item,
            ActionType.CLEAR_ENTITIES: lambda p, v, r: self.backend.clear_entities(p.get("type") or p.get("entity")),
            ActionType.WAIT: self._wait,
            ActionType.STORE_STATE: self._store_state,
            ActionType.COMPARE_STATES: self._compare_states,
            ActionType.PRINT_STORED_STATE: self._print_stored_state,
            ActionType.PRINT_STATE_COMPARISON: self._print_stored_state,
            ActionType.ASSERT_RESPONSE_CONTAINS: self._assert_contains,
            ActionType.ASSERT_EQUALS: self._assert_equals,
            ActionType.ASSERT_JSON_EQUALS: self._assert_json_equals,
            ActionType.ASSERT_ENTITY_EXISTS: self._assert_entity_exists,
            ActionType.ASSERT_ENTITY_MISSING: self._assert_entity_missing,
            ActionType.ASSERT_PLAYER_HAS_ITEM: self._assert_player_has_item,
        }

    # ------------------------------------------------------------------ entry point
    def execute(self, scenario: Scenario) -> ScenarioResult:
        result = ScenarioResult(scenario_name=scenario.name)
        variables = VariableStore()
        self._last_response = None
        started = time.perf_counter()
        logger.info("running scenario %r", scenario.name)

        if self.manage_lifecycle:
            try:
                self.connections.initialize()
            except Exception as exc:
                logger.error("backend initialization failed for %r: %s", scenario.name, exc)
                self.status = ExecutionState.FAILED
                result.message = f"backend initialization failed: {exc}"
                result.error = exc
                result.execution_time_ms = (time.perf_counter() - started) * 1000.0
                return result

        try:
            for phase, status, actions in (
                ("setup", ExecutionState.RUNNING_SETUP, scenario.setup),
                ("steps", ExecutionState.RUNNING_STEPS, scenario.steps),
            ):
                self.status = status
                failed = self._run_phase(phase, actions, variables, result, abort_on_failure=True)
                if failed is not None:
                    result.message = f"{phase} action '{failed.name}' failed: {failed.error}"
                    break

            self.status = ExecutionState.RUNNING_CLEANUP
            self._run_phase("cleanup", scenario.cleanup, variables, result, abort_on_failure=False)
        finally:
            if self.manage_lifecycle:
                try:
                    self.connections.cleanup()
                except Exception as exc:
                    logger.warning("connection cleanup failed after %r: %s", scenario.name, exc)

        result.success = result.error is None
        if result.success:
            result.message = f"scenario '{scenario.name}' passed"
        self.status = ExecutionState.PASSED if result.success else ExecutionState.FAILED
        result.execution_time_ms = (time.perf_counter() - started) * 1000.0
        logger.info("scenario %r %s in %.0f ms", scenario.name, self.status.value, result.execution_time_ms)
        return result

    # ------------------------------------------------------------------ phases
    def _run_phase(
        self,
        phase: str,
        actions: Iterable[Action],
        variables: VariableStore,
        result: ScenarioResult,
        *,
        abort_on_failure: bool,
    ) -> Optional[StepResult]:
        for action in actions:
            step = self._run_action(phase, action, variables, result)
            result.steps.append(step)
            if step.success:
                continue
            if abort_on_failure:
                return step
            logger.warning("%s action %r failed (ignored): %s", phase, action.name, step.error)
        return None

    def _run_action(
        self, phase: str, action: Action, variables: VariableStore, result: ScenarioResult
    ) -> StepResult:
        step = StepResult(phase=phase, name=action.name, action=action.tag)
        if action.type is None:
            logger.warning("skipping unknown action type %r (%s)", action.tag, action.name)
            step.skipped = True
            result.skipped_actions.append(action.tag)
            return step

        started = time.perf_counter()
        try:
            params = variables.resolve_fields(action.fields)
            logger.debug("%s: %s %s", phase, action.tag, params)
            delay_ms = self._delay_ms(params)
            response = self._handlers[action.type](params, variables, result)
            if action.store_as:
                variables.set(action.store_as, response)
                self.state.store(action.store_as, response)
            if delay_ms > 0:
                time.sleep(delay_ms / 1000.0)
        except Exception as exc:
            step.success = False
            step.error = str(exc)
            if phase != "cleanup" and result.error is None:
                result.error = exc
            step.duration_ms = (time.perf_counter() - started) * 1000.0
            return step

        step.response = response
        if action.type is not ActionType.WAIT and not action.type.value.startswith("assert_"):
            self._last_response = response
        step.duration_ms = (time.perf_counter() - started) * 1000.0
        return step

    def _delay_ms(self, params: Params) -> int:
        declared = params.get("duration")
        if declared is None:
            return self.settle_delay_ms
        return _milliseconds(declared)

    def _player(self, params: Params) -> str:
        return str(params.get("player") or params.get("username") or self.config.test_player)

    # ------------------------------------------------------------------ backend actions
    def _connect_player(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        return self.connections.connect_player(self._player(params))

    def _disconnect_player(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        return self.connections.disconnect_player(self._player(params))

    def _execute_command(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        command = str(_require(params, "command", "execute_command"))
        args = params.get("args")
        if isinstance(args, list) and args:
            command = " ".join([command, *(str(a) for a in args)])
        return self.backend.send_command(command)

    def _execute_player_command(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        command = str(_require(params, "command", "execute_player_command"))
        return self.backend.execute_player_command(self._player(params), command)

    def _give_item(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        item = str(_require(params, "item", "give_item"))
        return self.backend.give_item(self._player(params), item, int(params.get("count", 1)))

    def _spawn_entity(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        entity = str(params.get("entity") or _require(params, "type", "spawn_entity"))
        try:
            x, y, z = _coords(params, "spawn_entity")
        except ScenarioError:
            x, y, z = "~", "~", "~"
        return self.backend.spawn_entity(entity, x, y, z, name=params.get("name"))

    def _equip_item(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        item = str(_require(params, "item", "equip_item"))
        return self.backend.equip_item(self._player(params), item, str(params.get("slot") or "hand"))

    def _move_player(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        x, y, z = _coords(params, "move_player")
        return self.backend.move_player(self._player(params), x, y, z)

    def _send_chat(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        message = str(_require(params, "message", "send_chat"))
        return self.backend.send_chat(self._player(params), message)

    def _use_item(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        target = params.get("target") or params.get("entity") or params.get("item") or ""
        return self.backend.use_item(self._player(params), str(target))

    def _wait(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        # the declared duration is applied as this step's settle delay
        _require(params, "duration", "wait")
        return None

    # ------------------------------------------------------------------ state actions
    def _store_state(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        if "value" in params:
            return params["value"]
        source = params.get("from") or params.get("source")
        if not source:
            raise ScenarioError("store_state requires 'from' or 'value'")
        return variables.lookup(str(source))

    def _compare_states(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        before = str(_require(params, "state1", "compare_states"))
        after = str(_require(params, "state2", "compare_states"))
        for key in (before, after):
            if not self.state.exists(key):
                raise ScenarioError(f"no stored state named '{key}'")
        comparison = self.state.compare(before, after)
        logger.info("compare %s -> %s: %s", before, after, self.state.summary(comparison))
        return {"has_changes": comparison.has_changes, "diff": comparison.diff}

    def _print_stored_state(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        key = params.get("variable") or params.get("variable_name") or params.get("variableName")
        key = str(key or _require(params, "key", "print_stored_state"))
        logger.info("stored state %s = %s", key, self.state.retrieve_as_json(key))
        return self.state.retrieve(key)

    # ------------------------------------------------------------------ assertions
    def _assert_contains(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        expected = str(_require(params, "contains", "assert_response_contains"))
        actual = params["source"] if "source" in params else self._last_response
        return self._check(result, expected in stringify(actual), f"expected {actual!r} to contain {expected!r}")

    def _assert_equals(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        if "expected" not in params:
            raise ScenarioError("assert_equals requires 'expected'")
        expected = params["expected"]
        actual = params["actual"] if "actual" in params else self._last_response
        if isinstance(actual, str) and isinstance(expected, str):
            ok = actual.strip() == expected.strip()
        else:
            ok = actual == expected
        return self._check(result, ok, f"expected {expected!r}, got {actual!r}")

    @staticmethod
    def _check(result: ScenarioResult, ok: bool, failure: str) -> bool:
        if ok:
            result.assertions_passed += 1
            return True
        result.assertions_failed += 1
        raise AssertionFailed(failure)

    def _assert_json_equals(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        if "state1" in params or "state2" in params:
            names = [str(_require(params, key, "assert_json_equals")) for key in ("state1", "state2")]
            for key in names:
                if not self.state.exists(key):
                    raise ScenarioError(f"no stored state named '{key}'")
            left, right = (self.state.retrieve_as_json(key) for key in names)
        else:
            if "expected" not in params:
                raise ScenarioError("assert_json_equals requires 'state1'/'state2' or 'expected'")
            actual = params["actual"] if "actual" in params else self._last_response
            left, right = canonical_json(params["expected"]), canonical_json(actual)
        return self._check(result, left == right, f"JSON differs: {left} != {right}")

    def _assert_entity_exists(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        entity = str(_require(params, "entity", "assert_entity_exists"))
        found = self.backend.entity_exists(entity, self._player(params))
        return self._check(result, found, f"expected entity {entity!r} to exist")

    def _assert_entity_missing(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        entity = str(_require(params, "entity", "assert_entity_missing"))
        found = self.backend.entity_exists(entity, self._player(params))
        return self._check(result, not found, f"expected entity {entity!r} to be absent")

    def _assert_player_has_item(self, params: Params, variables: VariableStore, result: ScenarioResult) -> Any:
        item = str(_require(params, "item", "assert_player_has_item"))
        player = self._player(params)
        return self._check(result, self.backend.player_has_item(player, item), f"expected {player} to hold {item!r}")
