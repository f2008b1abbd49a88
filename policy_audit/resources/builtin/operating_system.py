"""The ``os`` resource: facts about the target platform."""

from typing import Any

from policy_audit.models.platform import PlatformInfo
from policy_audit.resources.base import ResourceContext


class OSResource:
    """Exposes family, name, release and arch, plus family membership tests.

    ``get("linux")`` is True on any Linux distribution, ``get("debian")`` on
    Debian derivatives, and so on.
    """

    def __init__(self, platform: PlatformInfo) -> None:
        self.platform = platform

    @classmethod
    async def create(cls, ctx: ResourceContext) -> "OSResource":
        return cls(ctx.platform)

    async def exists(self) -> bool:
        return True

    async def get(self, key: str) -> Any:
        if key in ("family", "name", "release", "arch"):
            return getattr(self.platform, key)
        if key == "families":
            return list(self.platform.families)
        return self.platform.in_family(key)

    def describe(self) -> str:
        return "Operating System Detection"
