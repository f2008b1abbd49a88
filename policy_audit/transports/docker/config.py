"""Configuration for the container exec transport."""

from typing import Any, Self

from pydantic import Field

from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.manifest import TransportConfig


class DockerConfig(TransportConfig):
    """Configuration for running commands inside a container."""

    container: str = Field(..., min_length=1)
    executable: str = "docker"

    @classmethod
    def from_target(cls, descriptor: TargetDescriptor, **settings: Any) -> Self:
        return cls(
            target=descriptor,
            container=descriptor.host or "",
            executable=descriptor.option("executable", "docker"),
            **settings,
        )
