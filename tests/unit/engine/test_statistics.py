"""Tests for status rollup, statistics and exit codes."""

import pytest

from policy_audit.engine.statistics import (
    EXIT_FAILED,
    EXIT_PASSED,
    EXIT_SKIPPED,
    compute_statistics,
    exit_code,
    rollup,
)
from policy_audit.models.result import (
    ControlCounts,
    ProfileResult,
    Statistics,
    TestCounts,
)
from policy_audit.testing.factories import ControlResultFactory, TestResultFactory


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([], "skipped"),
        (["passed", "skipped"], "passed"),
        (["passed", "failed"], "failed"),
        (["skipped", "error"], "failed"),
        (["skipped", "skipped"], "skipped"),
        (["passed"], "passed"),
    ],
)
def test_rollup(statuses: list[str], expected: str) -> None:
    assert rollup(statuses) == expected  # type: ignore[arg-type]


def test_compute_statistics() -> None:
    profile = ProfileResult(
        name="p",
        version="1.0.0",
        title=None,
        controls=[
            ControlResultFactory.build(
                status="failed",
                results=[
                    TestResultFactory.build(status="passed"),
                    TestResultFactory.build(status="error"),
                ],
            ),
            ControlResultFactory.build(
                status="skipped", results=[TestResultFactory.build(status="skipped")]
            ),
        ],
    )

    statistics = compute_statistics([profile], duration=1.5)

    assert statistics.controls == ControlCounts(passed=0, failed=1, skipped=1)
    assert statistics.tests == TestCounts(passed=1, failed=0, skipped=1, error=1)
    assert statistics.tests.total == 3
    assert statistics.duration == 1.5


@pytest.mark.parametrize(
    ("controls", "expected"),
    [
        (ControlCounts(passed=3), EXIT_PASSED),
        (ControlCounts(passed=3, skipped=1), EXIT_SKIPPED),
        (ControlCounts(passed=3, skipped=1, failed=1), EXIT_FAILED),
        (ControlCounts(), EXIT_PASSED),
    ],
)
def test_exit_code(controls: ControlCounts, expected: int) -> None:
    assert exit_code(Statistics(controls=controls, tests=TestCounts())) == expected
