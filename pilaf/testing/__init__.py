"""Consistency-run harness: readiness polling, comparison, and the tester."""

from .comparator import ResultComparator, normalize_response
from .comparison import BackendTestResult, ConsistencyComparison, PerformanceComparison, StoryComparison
from .consistency import DEFAULT_CONFIGS, DEFAULT_STORIES, ConsistencyTester
from .readiness import wait_for_services

__all__ = [
    "BackendTestResult",
    "ConsistencyComparison",
    "ConsistencyTester",
    "DEFAULT_CONFIGS",
    "DEFAULT_STORIES",
    "PerformanceComparison",
    "ResultComparator",
    "StoryComparison",
    "normalize_response",
    "wait_for_services",
]
