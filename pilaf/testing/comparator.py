from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Tuple

from ..rcon.client import NO_RESPONSE
from ..scenario.results import ScenarioResult, StepResult
from ..state_manager import canonical_json
from .comparison import StoryComparison

logger = logging.getLogger(__name__)

# Minecraft formatting codes, e.g. "§a" or "§l"
_FORMAT_CODE_RE = re.compile(r"§[0-9a-fk-or]", re.IGNORECASE)


def normalize_response(value: Any) -> str:
    """Reduce a step response to the text two backends should agree on."""
    if value is None:
        return ""
    if isinstance(value, str):
        text = " ".join(_FORMAT_CODE_RE.sub("", value).split())
        return "" if text == NO_RESPONSE else text
    try:
        return canonical_json(value)
    except (TypeError, ValueError):
        return str(value)


def _executed(result: ScenarioResult) -> List[StepResult]:
    return [s for s in result.steps if not s.skipped]


def _signature(result: ScenarioResult) -> Tuple[Tuple[str, str], ...]:
    return tuple((s.phase, s.name) for s in _executed(result))


def _mixed(values: Mapping[str, Any]) -> bool:
    return len(set(values.values())) > 1


def _fmt(values: Mapping[str, Any]) -> str:
    return ", ".join(f"{cfg}={val!r}" for cfg, val in values.items())


class ResultComparator:
    """
    Judges whether results for one scenario agree across configurations.

    Compared: pass/fail, error presence and type, assertion counts, the
    sequence of executed steps, per-step success, and normalized per-step
    responses. Execution time is reported as a note, never as an
    inconsistency.
    """

    def compare(self, story: str, results: Mapping[str, ScenarioResult]) -> StoryComparison:
        comparison = StoryComparison(story=story, consistent=True, backend_results=dict(results))
        if len(results) < 2:
            comparison.notes.append("fewer than two results; nothing to compare")
            return comparison

        issues = comparison.inconsistencies
        prefix = f"Scenario '{story}'"

        success = {cfg: r.success for cfg, r in results.items()}
        if _mixed(success):
            issues.append(f"{prefix}: pass/fail differs ({_fmt(success)})")

        errors = {cfg: type(r.error).__name__ if r.error is not None else None for cfg, r in results.items()}
        if _mixed(errors):
            issues.append(f"{prefix}: errors differ ({_fmt(errors)})")

        assertions = {cfg: (r.assertions_passed, r.assertions_failed) for cfg, r in results.items()}
        if _mixed(assertions):
            issues.append(f"{prefix}: assertion counts differ ({_fmt(assertions)})")

        signatures = {cfg: _signature(r) for cfg, r in results.items()}
        if _mixed(signatures):
            counts = {cfg: len(sig) for cfg, sig in signatures.items()}
            issues.append(f"{prefix}: executed steps differ ({_fmt(counts)} steps)")

        issues.extend(self._compare_steps(prefix, results))

        perf = comparison.performance
        if perf is not None and perf.significant:
            comparison.notes.append(f"execution time spread: {perf.describe()}")

        comparison.consistent = not issues
        if issues:
            logger.info("%s inconsistent: %d issue(s)", prefix, len(issues))
        return comparison

    def _compare_steps(self, prefix: str, results: Mapping[str, ScenarioResult]) -> List[str]:
        executed: Dict[str, List[StepResult]] = {cfg: _executed(r) for cfg, r in results.items()}
        depth = min(len(steps) for steps in executed.values())
        issues: List[str] = []
        for idx in range(depth):
            row = {cfg: steps[idx] for cfg, steps in executed.items()}
            label = next(iter(row.values())).name
            if len({(s.phase, s.name) for s in row.values()}) > 1:
                # sequences diverged; already reported above
                break
            status = {cfg: s.success for cfg, s in row.items()}
            if _mixed(status):
                issues.append(f"{prefix}: step '{label}' success differs ({_fmt(status)})")
                continue
            responses = {cfg: normalize_response(s.response) for cfg, s in row.items()}
            if _mixed(responses):
                issues.append(f"{prefix}: step '{label}' responses differ ({_fmt(responses)})")
        return issues
