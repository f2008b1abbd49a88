"""Configuration for the mock transport."""

from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field

from policy_audit.errors import ConfigurationError
from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.manifest import TransportConfig
from policy_audit.transports.mock.models import MockData


class MockConfig(TransportConfig):
    """Configuration for the replay transport.

    Data comes inline or from a YAML fixture named by the ``fixture`` option.
    """

    data: MockData = Field(default_factory=MockData)

    @classmethod
    def from_target(cls, descriptor: TargetDescriptor, **settings: Any) -> Self:
        data: Any = {}
        if fixture := descriptor.option("fixture"):
            path = Path(fixture)
            if not path.is_file():
                raise ConfigurationError(f"Mock fixture not found: {fixture}")
            try:
                data = yaml.safe_load(path.read_text()) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in mock fixture {fixture}: {e}") from e
        return cls(target=descriptor, data=data, **settings)
