"""Tests for the resource registry and platform-gated dispatch."""

import pytest

from policy_audit.errors import (
    ResourceRegistrationError,
    TargetConnectionError,
)
from policy_audit.filter_table import TableSchema
from policy_audit.models.platform import WINDOWS_PLATFORM
from policy_audit.resources.base import ResourceContext
from policy_audit.resources.builtin import OSResource
from policy_audit.resources.registry import (
    ResourceRegistry,
    UnknownResourceError,
    call_label,
    default_registry,
    supported_on,
)
from policy_audit.testing.factories import PlatformInfoFactory, mock_connection


async def skipping(ctx: ResourceContext) -> OSResource:
    ctx.skip("not applicable here")


async def broken(ctx: ResourceContext) -> OSResource:
    raise RuntimeError("constructor blew up")


async def unreachable(ctx: ResourceContext) -> OSResource:
    raise TargetConnectionError("lost the target")


@pytest.fixture
def registry() -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.register("os", OSResource.create)
    registry.register("linux_only", OSResource.create, supports=supported_on("linux"))
    registry.register("skipping", skipping, schema=TableSchema("a"))
    registry.register("broken", broken)
    registry.register("unreachable", unreachable)
    return registry


class TestRegistration:
    """Tests for registering resources."""

    def test_duplicate_name_rejected(self, registry: ResourceRegistry) -> None:
        with pytest.raises(ResourceRegistrationError, match="already registered"):
            registry.register("os", OSResource.create)

    def test_names_sorted(self, registry: ResourceRegistry) -> None:
        assert registry.names == ["broken", "linux_only", "os", "skipping", "unreachable"]

    def test_default_registry_has_builtins(self) -> None:
        registry = default_registry()

        for name in ("command", "file", "os", "kernel_module", "processes", "yaml"):
            assert name in registry


class TestInstantiate:
    """Tests for ResourceRegistry.instantiate."""

    async def test_active(self, registry: ResourceRegistry) -> None:
        instance = await registry.instantiate("os", mock_connection())

        assert instance.status == "active"
        assert instance.is_active
        assert await instance.get("name") == "ubuntu"

    async def test_unsupported_platform_never_calls_constructor(self) -> None:
        """A rejected platform skips without touching the target."""
        connection = mock_connection(platform=WINDOWS_PLATFORM)

        instance = await default_registry().instantiate(
            "kernel_module", connection, "usb_storage"
        )

        assert instance.status == "skipped"
        assert instance.reason == "Resource kernel_module is not supported on platform windows"
        assert connection.calls == []

    async def test_supported_family_member(self, registry: ResourceRegistry) -> None:
        connection = mock_connection(platform=PlatformInfoFactory.build(family="redhat"))

        instance = await registry.instantiate("linux_only", connection)

        assert instance.is_active

    async def test_constructor_skip(self, registry: ResourceRegistry) -> None:
        instance = await registry.instantiate("skipping", mock_connection())

        assert instance.status == "skipped"
        assert instance.reason == "not applicable here"
        assert await instance.exists() is False
        assert await instance.get("anything") is None

    async def test_skipped_table_is_empty(self, registry: ResourceRegistry) -> None:
        instance = await registry.instantiate("skipping", mock_connection())

        table = await instance.table()

        assert table is not None
        assert table.count == 0
        assert table.where(a=1).column("a") == []

    async def test_constructor_failure(self, registry: ResourceRegistry) -> None:
        instance = await registry.instantiate("broken", mock_connection())

        assert instance.status == "failed"
        assert isinstance(instance.error, RuntimeError)
        assert instance.reason == "constructor blew up"

    async def test_unknown_resource(self, registry: ResourceRegistry) -> None:
        instance = await registry.instantiate("nope", mock_connection())

        assert instance.status == "failed"
        assert isinstance(instance.error, UnknownResourceError)

    async def test_transport_fault_propagates(self, registry: ResourceRegistry) -> None:
        with pytest.raises(TargetConnectionError):
            await registry.instantiate("unreachable", mock_connection())


def test_call_label() -> None:
    assert call_label("file", ["/etc/passwd"], {"mode": 1}) == "file('/etc/passwd', mode=1)"
