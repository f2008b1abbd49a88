"""Rollup of test results into control status, counts and exit codes."""

from collections import Counter
from collections.abc import Iterable, Sequence

from policy_audit.models.result import (
    ControlCounts,
    ControlStatus,
    ProfileResult,
    Statistics,
    TestCounts,
    TestStatus,
)

EXIT_PASSED = 0
EXIT_FATAL = 1
EXIT_FAILED = 100
EXIT_SKIPPED = 101


def rollup(statuses: Sequence[TestStatus]) -> ControlStatus:
    """Overall status of a control from its test statuses.

    No tests means skipped; any failure or error means failed; all skipped
    means skipped; otherwise passed.
    """
    if not statuses:
        return "skipped"
    if any(status in ("failed", "error") for status in statuses):
        return "failed"
    if all(status == "skipped" for status in statuses):
        return "skipped"
    return "passed"


def compute_statistics(profiles: Iterable[ProfileResult], duration: float = 0.0) -> Statistics:
    control_counts: Counter[str] = Counter()
    test_counts: Counter[str] = Counter()
    for profile in profiles:
        for control in profile.controls:
            control_counts[control.status] += 1
            test_counts.update(result.status for result in control.results)

    return Statistics(
        controls=ControlCounts(
            passed=control_counts["passed"],
            failed=control_counts["failed"],
            skipped=control_counts["skipped"],
        ),
        tests=TestCounts(
            passed=test_counts["passed"],
            failed=test_counts["failed"],
            skipped=test_counts["skipped"],
            error=test_counts["error"],
        ),
        duration=duration,
    )


def exit_code(statistics: Statistics) -> int:
    """0 when nothing failed or skipped, 100 on failures, 101 on skips only."""
    if statistics.controls.failed:
        return EXIT_FAILED
    if statistics.controls.skipped:
        return EXIT_SKIPPED
    return EXIT_PASSED
