"""Transport manifest definition for the plugin system."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from policy_audit.errors import ConfigurationError
from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.base import DEFAULT_COMMAND_TIMEOUT, Connection


class TransportConfig(BaseModel):
    """Settings shared by every transport, validated before any I/O."""

    model_config = ConfigDict(frozen=True)

    target: TargetDescriptor
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT

    @classmethod
    def from_target(cls, descriptor: TargetDescriptor, **settings: Any) -> Self:
        """Build the config from a descriptor; override to map fields."""
        return cls(target=descriptor, **settings)

    @classmethod
    def validated(cls, descriptor: TargetDescriptor, **settings: Any) -> Self:
        """Like ``from_target`` but reporting problems as ConfigurationError."""
        try:
            return cls.from_target(descriptor, **settings)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'target'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(
                f"Invalid {descriptor.scheme} target {descriptor.locator}: {problems}"
            ) from e


ConfigT = TypeVar("ConfigT", bound=TransportConfig)


@dataclass(frozen=True, kw_only=True)
class TransportManifest(Generic[ConfigT]):
    """Manifest describing a transport plugin.

    The manifest holds the configuration class and the connection factory so
    transports can be loaded lazily from their scheme.
    """

    config_cls: type[ConfigT]
    connection_factory: Callable[[ConfigT], AbstractAsyncContextManager[Connection]]
