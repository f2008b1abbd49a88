"""Execution of a profile's controls against one connection."""

import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from policy_audit.engine.matchers import UnknownMatcherError, get_matcher
from policy_audit.engine.selection import ControlFilter
from policy_audit.engine.statistics import rollup
from policy_audit.errors import TargetConnectionError
from policy_audit.filter_table import FilterTable
from policy_audit.models.result import ControlResult, ProfileResult, TestResult
from policy_audit.profiles.models import Assertion, Control, Profile, TestBlock
from policy_audit.resources.base import StatementQueryable
from policy_audit.resources.instance import ResourceInstance
from policy_audit.resources.registry import ResourceRegistry, call_label
from policy_audit.transports.base import Connection

log = logging.getLogger(__name__)

REGEX_CRITERION = re.compile(r"^/(?P<pattern>.+)/$")
TABLE_PROPERTIES = frozenset({"count", "entries", "exists"})


def unsupported_message(platform_name: str) -> str:
    return f"This OS/platform ({platform_name}) is not supported by this profile."


def where_criteria(raw: Mapping[str, Any]) -> dict[str, Any]:
    """``/regex/`` strings become compiled patterns, other values match literally."""
    criteria: dict[str, Any] = {}
    for name, value in raw.items():
        if isinstance(value, str) and (match := REGEX_CRITERION.match(value)):
            criteria[name] = re.compile(match["pattern"])
        else:
            criteria[name] = value
    return criteria


def describe_assertion(subject: str, assertion: Assertion) -> str:
    its = f" {assertion.its}" if assertion.its else ""
    should = "should not" if assertion.negate else "should"
    expected = ""
    if assertion.expected is not None:
        expected = f" {assertion.expected!r}"
    return f"{subject}{its} {should} {assertion.matcher.replace('_', ' ')}{expected}"


def table_value(table: FilterTable, its: str | None) -> Any:
    if its is None or its == "exists":
        return table.exists
    if its == "count":
        return table.count
    if its == "entries":
        return [dict(row) for row in table.entries]
    return list(table.column(its))


@dataclass(kw_only=True)
class ProfileRunner:
    """Runs controls in declaration order, isolating faults per test.

    Resource instances are memoized for the lifetime of the runner, which is
    one run against one connection.
    """

    registry: ResourceRegistry
    connection: Connection
    control_filter: ControlFilter = field(default_factory=ControlFilter)
    input_overrides: Mapping[str, Any] = field(default_factory=dict)
    _instances: dict[str, ResourceInstance] = field(default_factory=dict, init=False)

    async def run(self, profile: Profile) -> ProfileResult:
        platform = await self.connection.platform()
        skip_message = None
        if not profile.metadata.supports_platform(platform):
            skip_message = unsupported_message(platform.name)
            log.info("Profile %s does not support %s", profile.name, platform)

        inputs = {**profile.input_defaults(), **self.input_overrides}
        results = [
            await self.run_control(control, inputs, skip_message)
            for control in profile.controls
            if self.control_filter(control.id)
        ]
        log.info("Executed %d control(s) of profile %s", len(results), profile.name)
        return ProfileResult(
            name=profile.name,
            version=profile.version,
            title=profile.metadata.title,
            controls=results,
            skip_message=skip_message,
        )

    async def run_control(
        self, control: Control, inputs: Mapping[str, Any], skip_message: str | None = None
    ) -> ControlResult:
        results: list[TestResult] = []
        for block in control.tests:
            if skip_message is not None:
                results.extend(
                    TestResult(
                        status="skipped",
                        description=describe_assertion(block.resource, assertion),
                        code_location=control.code_location,
                        message=skip_message,
                        resource=block.resource,
                    )
                    for assertion in block.expect
                )
                continue

            instance = await self.instance(block)
            for assertion in block.expect:
                results.append(await self.evaluate(control, block, instance, assertion, inputs))

        status = rollup([result.status for result in results])
        if any(result.status == "error" for result in results):
            log.error("Control %s raised errors during evaluation", control.id)
        return ControlResult(
            id=control.id,
            title=control.title,
            impact=control.impact,
            tags=dict(control.tags),
            code_location=control.code_location,
            status=status,
            results=results,
        )

    async def instance(self, block: TestBlock) -> ResourceInstance:
        label = call_label(block.resource, block.args, dict(block.params))
        if label not in self._instances:
            self._instances[label] = await self.registry.instantiate(
                block.resource, self.connection, *block.args, **block.params
            )
        return self._instances[label]

    async def evaluate(
        self,
        control: Control,
        block: TestBlock,
        instance: ResourceInstance,
        assertion: Assertion,
        inputs: Mapping[str, Any],
    ) -> TestResult:
        """Evaluate one assertion; exceptions become an error result."""
        description = describe_assertion(instance.describe(), assertion)
        result = {
            "description": description,
            "code_location": control.code_location,
            "resource": instance.label,
        }

        if instance.status == "skipped":
            return TestResult(status="skipped", message=instance.reason, **result)
        if instance.status == "failed":
            return TestResult(
                status="error", message=f"{instance.label}: {instance.reason}", **result
            )

        started = time.monotonic()
        try:
            expected = self.expected_value(assertion, inputs)
            passed, actual = await self.check(block, instance, assertion, expected)
        except TargetConnectionError:
            raise
        except Exception as e:
            log.debug("Error evaluating %s", description, exc_info=True)
            return TestResult(
                status="error",
                message=f"{type(e).__name__}: {e}",
                duration=time.monotonic() - started,
                **result,
            )

        duration = time.monotonic() - started
        if passed:
            return TestResult(status="passed", duration=duration, **result)
        qualifier = "not " if assertion.negate else ""
        return TestResult(
            status="failed",
            message=f"expected {qualifier}{assertion.matcher} {expected!r}, got {actual!r}",
            duration=duration,
            **result,
        )

    @staticmethod
    def expected_value(assertion: Assertion, inputs: Mapping[str, Any]) -> Any:
        if (name := assertion.input_name) is None:
            return assertion.expected
        if name not in inputs:
            raise KeyError(f"Unknown input '{name}'")
        return inputs[name]

    async def check(
        self,
        block: TestBlock,
        instance: ResourceInstance,
        assertion: Assertion,
        expected: Any,
    ) -> tuple[bool, Any]:
        """Return whether the assertion holds and the actual value it saw."""
        if assertion.matcher == "have_statement":
            resource = instance.resource
            if not isinstance(resource, StatementQueryable):
                raise UnknownMatcherError(
                    f"{instance.describe()} has no 'have_statement' matcher"
                )
            actual = await resource.has_statement(expected)
            holds = bool(actual)
        else:
            actual = await self.actual_value(block, instance, assertion)
            holds = get_matcher(assertion.matcher)(actual, expected)
        return holds != assertion.negate, actual

    async def actual_value(
        self, block: TestBlock, instance: ResourceInstance, assertion: Assertion
    ) -> Any:
        if block.where or (assertion.its in TABLE_PROPERTIES and instance.schema is not None):
            table = await instance.table()
            if table is None:
                raise TypeError(f"{instance.describe()} does not support where filters")
            return table_value(table.where(**where_criteria(block.where)), assertion.its)
        if assertion.its is None:
            return await instance.exists()
        return await instance.get(assertion.its)
