"""Models for audit results."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, TypeAlias

TestStatus: TypeAlias = Literal["passed", "failed", "skipped", "error"]
ControlStatus: TypeAlias = Literal["passed", "failed", "skipped"]


@dataclass(frozen=True, kw_only=True)
class TestResult:
    """Outcome of one assertion."""

    __test__ = False

    status: TestStatus
    description: str
    code_location: str
    message: str | None = None
    resource: str | None = None
    duration: float = 0.0


@dataclass(frozen=True, kw_only=True)
class ControlResult:
    """A control with its test results and rolled-up status."""

    id: str
    title: str | None
    impact: float
    tags: dict[str, object]
    code_location: str
    status: ControlStatus
    results: Sequence[TestResult]


@dataclass(frozen=True, kw_only=True)
class ProfileResult:
    """Results of one profile's selected controls, in declaration order."""

    name: str
    version: str
    title: str | None
    controls: Sequence[ControlResult]
    skip_message: str | None = None


@dataclass(frozen=True, kw_only=True)
class ControlCounts:
    passed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped


@dataclass(frozen=True, kw_only=True)
class TestCounts:
    """Per-assertion counts; errors are kept apart from failures."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped + self.error


@dataclass(frozen=True, kw_only=True)
class Statistics:
    controls: ControlCounts
    tests: TestCounts
    duration: float = 0.0


@dataclass(frozen=True, kw_only=True)
class RunResult:
    """Tree handed to reporters: platform, profiles and statistics."""

    target: str
    platform: dict[str, str | None]
    profiles: Sequence[ProfileResult]
    statistics: Statistics
