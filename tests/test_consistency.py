import time

import pytest

from pilaf.config import TestConfiguration
from pilaf.scenario import ScenarioResult, StepResult, scenario_from_mapping
from pilaf.testing import ConsistencyTester, PerformanceComparison, ResultComparator, normalize_response
from pilaf.testing.readiness import wait_for_services

from tests._fakes import StubBackend, echo_last_word

STORY = scenario_from_mapping(
    {
        "name": "say-hi",
        "steps": [{"name": "greet", "action": "execute_command", "command": "say hi"}],
    }
)

CONFIG_A = TestConfiguration(name="stub-a", backend="rcon", skip_health_checks=True, settle_delay_ms=0)
CONFIG_B = TestConfiguration(name="stub-b", backend="rcon", skip_health_checks=True, settle_delay_ms=0)


def _tester(replies, **kwargs):
    def factory(config):
        return StubBackend(replies[config.name])

    return ConsistencyTester(stories=[STORY], configs=[CONFIG_A, CONFIG_B], backend_factory=factory, **kwargs)


def test_identical_outputs_are_consistent():
    comparison = _tester({"stub-a": echo_last_word, "stub-b": echo_last_word}).run()
    assert comparison.overall_consistent
    assert comparison.inconsistencies == []
    story = comparison.story_comparisons["say-hi"]
    assert story.consistent and story.inconsistencies == []
    assert set(story.backend_results) == {"stub-a", "stub-b"}


def test_different_output_is_flagged_with_scenario_name():
    comparison = _tester({"stub-a": echo_last_word, "stub-b": lambda cmd: "bye"}).run()
    assert not comparison.overall_consistent
    story = comparison.story_comparisons["say-hi"]
    assert not story.consistent
    assert any("say-hi" in line and "greet" in line for line in story.inconsistencies)
    assert comparison.inconsistencies[0] == "Story 'say-hi' failed consistency check"


def test_formatting_differences_are_tolerated():
    comparison = _tester({"stub-a": lambda c: "§aPlayer  joined", "stub-b": lambda c: "Player joined\n"}).run()
    assert comparison.overall_consistent


def test_task_timeout_is_a_failed_result_not_an_abort():
    def factory(config):
        if config.name == "stub-b":
            return StubBackend(lambda cmd: time.sleep(1.0) or "late")
        return StubBackend(echo_last_word)

    tester = ConsistencyTester(
        stories=[STORY], configs=[CONFIG_A, CONFIG_B], backend_factory=factory, task_timeout=0.2
    )
    comparison = tester.run()
    slow = comparison.backend_results["stub-b"].story_results["say-hi"]
    assert not slow.success
    assert "timed out" in slow.message
    assert comparison.backend_results["stub-a"].story_results["say-hi"].success
    assert not comparison.overall_consistent


def test_unloadable_configuration_records_failures(tmp_path):
    tester = ConsistencyTester(
        stories=[STORY],
        configs=[CONFIG_A, "missing-config.yaml"],
        base_dir=tmp_path,
        backend_factory=lambda config: StubBackend(echo_last_word),
    )
    comparison = tester.run()
    broken = comparison.backend_results["missing-config"]
    assert not broken.successful
    assert broken.errors
    assert not broken.story_results["say-hi"].success
    assert not comparison.overall_consistent


def test_catalogs_load_from_files(tmp_path):
    (tmp_path / "story.yaml").write_text(
        "name: from-file\nsteps:\n  - action: execute_command\n    command: say hi\n", encoding="utf-8"
    )
    for name in ("one", "two"):
        (tmp_path / f"config-{name}.yaml").write_text(
            "backend: rcon\nskip_health_checks: true\nsettle_delay_ms: 0\n", encoding="utf-8"
        )
    tester = ConsistencyTester(
        stories=["story.yaml"],
        configs=["config-one.yaml", "config-two.yaml"],
        base_dir=tmp_path,
        backend_factory=lambda config: StubBackend(echo_last_word),
        environ={},
    )
    comparison = tester.run()
    assert comparison.overall_consistent
    assert set(comparison.backend_results) == {"config-one", "config-two"}
    assert "story.yaml" in comparison.story_comparisons


def test_unready_services_are_recorded_but_stories_still_run():
    config = TestConfiguration(name="cold", backend="rcon", settle_delay_ms=0)
    tester = ConsistencyTester(
        stories=[STORY],
        configs=[config],
        backend_factory=lambda c: StubBackend(echo_last_word),
        readiness=lambda c: {"console-protocol": False},
    )
    comparison = tester.run()
    result = comparison.backend_results["cold"]
    assert result.errors and "not ready" in result.errors[0]
    assert result.story_results["say-hi"].success


def test_readiness_error_is_recorded_and_other_configs_still_run():
    broken = TestConfiguration(name="broken", backend="mineflayer", settle_delay_ms=0)

    def readiness(config):
        if config.name == "broken":
            raise ValueError("base_url must be a non-empty string")
        return {"console-protocol": True}

    tester = ConsistencyTester(
        stories=[STORY],
        configs=[CONFIG_A, broken],
        backend_factory=lambda c: StubBackend(echo_last_word),
        readiness=readiness,
    )
    comparison = tester.run()
    assert set(comparison.backend_results) == {"stub-a", "broken"}
    result = comparison.backend_results["broken"]
    assert result.errors == ["readiness check failed: base_url must be a non-empty string"]
    assert result.story_results["say-hi"].success
    assert comparison.backend_results["stub-a"].errors == []


def _result(name, success=True, response="hi", ms=100.0, error=None):
    res = ScenarioResult(scenario_name=name, success=success, execution_time_ms=ms, error=error)
    res.steps.append(StepResult(phase="steps", name="greet", action="execute_command", response=response))
    return res


def test_comparator_single_result_is_consistent():
    comparison = ResultComparator().compare("solo", {"a": _result("solo", success=False)})
    assert comparison.consistent


def test_comparator_mixed_pass_fail_is_inconsistent():
    comparison = ResultComparator().compare(
        "s", {"a": _result("s"), "b": _result("s", success=False, error=RuntimeError("x"))}
    )
    assert not comparison.consistent
    assert any("pass/fail" in line for line in comparison.inconsistencies)
    assert any("errors differ" in line for line in comparison.inconsistencies)


def test_timing_is_reported_not_judged():
    comparison = ResultComparator().compare("s", {"a": _result("s", ms=100), "b": _result("s", ms=500)})
    assert comparison.consistent
    perf = comparison.performance
    assert perf.significant
    assert perf.min_ms == 100 and perf.max_ms == 500 and perf.count == 2
    assert comparison.notes


def test_performance_threshold():
    perf = PerformanceComparison.from_times({"a": 100.0, "b": 109.0})
    assert perf.relative_difference == pytest.approx(0.09)
    assert not perf.significant
    assert PerformanceComparison.from_times({}) is None


def test_zero_time_run_against_a_real_one_is_significant():
    perf = PerformanceComparison.from_times({"timed-out": 0.0, "ok": 180000.0})
    assert perf.significant
    assert perf.to_dict()["relative_difference"] is None
    both_zero = PerformanceComparison.from_times({"a": 0.0, "b": 0.0})
    assert not both_zero.significant


def test_normalize_response():
    assert normalize_response("(no response)") == ""
    assert normalize_response(None) == ""
    assert normalize_response("§c§lHello   world ") == "Hello world"
    assert normalize_response({"b": 1, "a": [1]}) == normalize_response({"a": [1], "b": 1})


def test_wait_for_services_polls_until_ready():
    answers = iter([{"console-protocol": False}, {"console-protocol": False}, {"console-protocol": True}])
    sleeps = []
    health = wait_for_services(CONFIG_A, probe=lambda: next(answers), attempts=5, interval=0.5, sleep=sleeps.append)
    assert health == {"console-protocol": True}
    assert sleeps == [0.5, 0.5]


def test_wait_for_services_gives_up_after_budget():
    sleeps = []
    health = wait_for_services(
        CONFIG_A, probe=lambda: {"console-protocol": False}, attempts=3, interval=1.0, sleep=sleeps.append
    )
    assert health == {"console-protocol": False}
    assert len(sleeps) == 2


def test_containerized_configs_get_longer_budgets():
    tester = ConsistencyTester(stories=[], configs=[])
    assert tester.timeout_for(TestConfiguration(backend="docker")) == 300.0
    assert tester.timeout_for(TestConfiguration(backend="headlessmc")) == 180.0
