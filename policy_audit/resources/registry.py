"""Resource registry and platform-gated dispatch."""

import functools
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from policy_audit.errors import ResourceRegistrationError, ResourceSkipped, TargetConnectionError
from policy_audit.filter_table import TableSchema
from policy_audit.models.platform import PlatformInfo
from policy_audit.plugins import load_all_plugins
from policy_audit.resources.base import Resource, ResourceContext
from policy_audit.resources.instance import ResourceInstance
from policy_audit.transports.base import Connection

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "policy_audit.resources"

SupportPredicate: TypeAlias = Callable[[PlatformInfo], bool]
ResourceFactory: TypeAlias = Callable[..., Awaitable[Resource]]


class UnknownResourceError(LookupError):
    """Raised for a resource name nothing was registered under."""


def supported_everywhere(platform: PlatformInfo) -> bool:
    return True


def supported_on(*families: str) -> SupportPredicate:
    """Predicate accepting platforms in any of the given families or names."""

    def predicate(platform: PlatformInfo) -> bool:
        return any(platform.in_family(family) for family in families)

    predicate.__qualname__ = f"supported_on({', '.join(families)})"
    return predicate


@dataclass(frozen=True, kw_only=True)
class ResourceRegistration:
    """One entry of the registry."""

    name: str
    factory: ResourceFactory
    supports: SupportPredicate = supported_everywhere
    schema: TableSchema | None = None


def call_label(name: str, args: Sequence[Any], params: dict[str, Any]) -> str:
    rendered = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in params.items()]
    return f"{name}({', '.join(rendered)})"


class ResourceRegistry:
    """Append-only table of resource names.

    Registration happens before a run starts; during a run the table is only
    read, so no locking is needed.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ResourceRegistration] = {}

    def add(self, registration: ResourceRegistration) -> None:
        if registration.name in self._entries:
            raise ResourceRegistrationError(
                f"Resource '{registration.name}' is already registered"
            )
        self._entries[registration.name] = registration

    def register(
        self,
        name: str,
        factory: ResourceFactory,
        *,
        supports: SupportPredicate = supported_everywhere,
        schema: TableSchema | None = None,
    ) -> None:
        self.add(
            ResourceRegistration(
                name=name,
                factory=factory,
                supports=supports,
                schema=schema,
            )
        )

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    @property
    def names(self) -> Sequence[str]:
        return sorted(self._entries)

    def get(self, name: str) -> ResourceRegistration | None:
        return self._entries.get(name)

    async def instantiate(
        self, name: str, connection: Connection, *args: Any, **params: Any
    ) -> ResourceInstance:
        """Build a resource instance, deciding its status once.

        The platform predicate runs first; when it rejects the platform the
        resource's own constructor is never called. A constructor may still
        declare the instance skipped through ``ResourceContext.skip``. Any
        other constructor exception yields a failed instance, except transport
        faults, which abort the run.
        """
        label = call_label(name, args, params)
        entry = self._entries.get(name)
        if entry is None:
            return ResourceInstance.failed(
                name, label, UnknownResourceError(f"Unknown resource '{name}'")
            )

        platform = await connection.platform()
        if not entry.supports(platform):
            reason = f"Resource {name} is not supported on platform {platform}"
            log.debug("Skipping %s: %s", label, reason)
            return ResourceInstance.skipped(name, label, reason, entry.schema)

        context = ResourceContext(connection=connection, platform=platform)
        try:
            resource = await entry.factory(context, *args, **params)
        except ResourceSkipped as e:
            log.debug("Skipping %s: %s", label, e.reason)
            return ResourceInstance.skipped(name, label, e.reason, entry.schema)
        except TargetConnectionError:
            raise
        except Exception as e:
            log.warning("Resource %s failed to initialize: %s", label, e)
            return ResourceInstance.failed(name, label, e, entry.schema)

        return ResourceInstance.active(name, label, resource, entry.schema)


@functools.cache
def default_registry() -> ResourceRegistry:
    """Process-wide registry with built-in and entry point resources."""
    from policy_audit.resources.builtin import register_builtin_resources

    registry = ResourceRegistry()
    register_builtin_resources(registry)
    for name, registration in load_all_plugins(ENTRY_POINT_GROUP).items():
        log.debug("Registering plugin resource %s", name)
        registry.add(registration)
    return registry
