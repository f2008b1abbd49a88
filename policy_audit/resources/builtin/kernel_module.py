"""The ``kernel_module`` resource (Linux only)."""

import re
from typing import Any

from policy_audit.models.platform import PlatformInfo
from policy_audit.resources.base import ResourceContext
from policy_audit.transports.base import Connection


def sbin(platform: PlatformInfo, tool: str) -> str:
    """Red Hat style systems keep module tools out of a normal user's PATH."""
    if platform.family in ("redhat", "fedora"):
        return f"/sbin/{tool}"
    return tool


class KernelModuleResource:
    """Load and blacklist state of one kernel module."""

    def __init__(self, connection: Connection, platform: PlatformInfo, name: str) -> None:
        self.connection = connection
        self.platform = platform
        self.name = name
        self._modprobe_config: str | None = None

    @classmethod
    async def create(cls, ctx: ResourceContext, name: str) -> "KernelModuleResource":
        return cls(ctx.connection, ctx.platform, name)

    async def loaded(self) -> bool:
        result = await self.connection.run_command(sbin(self.platform, "lsmod"))
        if not result.ok:
            return False
        pattern = re.compile(rf"^{re.escape(self.name)}\s", re.MULTILINE)
        return pattern.search(result.stdout) is not None

    async def modprobe_config(self) -> str:
        if self._modprobe_config is None:
            result = await self.connection.run_command(
                f"{sbin(self.platform, 'modprobe')} --showconfig"
            )
            self._modprobe_config = result.stdout
        return self._modprobe_config

    async def _config_matches(self, pattern: str) -> bool:
        config = await self.modprobe_config()
        return re.search(pattern, config, re.MULTILINE) is not None

    async def version(self) -> str | None:
        result = await self.connection.run(
            sbin(self.platform, "modinfo"), "-F", "version", self.name
        )
        return result.stdout.strip() if result.ok else None

    async def exists(self) -> bool:
        return await self.loaded()

    async def get(self, key: str) -> Any:
        name = re.escape(self.name)
        match key:
            case "loaded":
                return await self.loaded()
            case "disabled":
                return await self._config_matches(rf"^install\s+{name}\s+/(s?)bin/(true|false)")
            case "disabled_via_bin_true":
                return await self._config_matches(rf"^install\s+{name}\s+/(s?)bin/true")
            case "disabled_via_bin_false":
                return await self._config_matches(rf"^install\s+{name}\s+/(s?)bin/false")
            case "blacklisted":
                return await self._config_matches(rf"^blacklist\s+{name}\b")
            case "version":
                return await self.version()
        return None

    def describe(self) -> str:
        return f"Kernel Module {self.name}"
