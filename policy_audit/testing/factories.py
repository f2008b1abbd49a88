"""Test factories for generating test data."""

from collections.abc import Mapping
from typing import Any

from polyfactory import Use
from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from policy_audit.models.platform import PlatformInfo
from policy_audit.models.result import ControlResult, TestResult
from policy_audit.models.target import TargetDescriptor
from policy_audit.profiles.models import Assertion, Control, ProfileMetadata, TestBlock
from policy_audit.transports.mock import MockCommand, MockConnection, MockData, MockFile


class PlatformInfoFactory(ModelFactory[PlatformInfo]):
    """Factory for PlatformInfo, an Ubuntu host by default."""

    family = "debian"
    name = "ubuntu"
    release = "22.04"
    arch = "x86_64"


class TestResultFactory(DataclassFactory[TestResult]):
    """Factory for TestResult."""

    status = "passed"
    message = None
    resource = None


class ControlResultFactory(DataclassFactory[ControlResult]):
    """Factory for ControlResult."""

    status = "passed"
    tags = Use(dict)
    results = Use(list)


class AssertionFactory(ModelFactory[Assertion]):
    """Factory for Assertion; checks existence by default."""

    its = None
    matcher = "exist"
    negate = False
    expected = None


class TestBlockFactory(ModelFactory[TestBlock]):
    """Factory for TestBlock."""

    resource = "os"
    args = Use(list)
    params = Use(dict)
    where = Use(dict)
    expect = Use(lambda: [AssertionFactory.build()])


class ControlFactory(ModelFactory[Control]):
    """Factory for Control."""

    impact = 0.5
    tags = Use(dict)
    tests = Use(lambda: [TestBlockFactory.build()])
    code_location = "controls/example.yaml:1"


class ProfileMetadataFactory(ModelFactory[ProfileMetadata]):
    """Factory for ProfileMetadata without dependencies."""

    version = "1.0.0"
    supports = Use(list)
    depends = Use(list)
    inputs = Use(list)


def mock_connection(
    *,
    platform: PlatformInfo | None = None,
    commands: Mapping[str, Any] | None = None,
    files: Mapping[str, Any] | None = None,
) -> MockConnection:
    """Mock connection over the given commands and files.

    Command values are stdout strings or ``MockCommand`` fields; file values
    are content strings or ``MockFile`` fields.
    """
    data = MockData(
        platform=platform if platform is not None else PlatformInfoFactory.build(),
        commands={
            command: MockCommand(stdout=v) if isinstance(v, str) else MockCommand(**v)
            for command, v in (commands or {}).items()
        },
        files={
            path: MockFile(content=v) if isinstance(v, str) else MockFile(**v)
            for path, v in (files or {}).items()
        },
    )
    return MockConnection(descriptor=TargetDescriptor(scheme="mock"), data=data)
