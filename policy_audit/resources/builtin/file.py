"""The ``file`` resource."""

from typing import Any

from policy_audit.resources.base import ResourceContext
from policy_audit.transports.files import FileHandle
from policy_audit.transports.models import FileStat

STAT_FIELDS = ("type", "mode", "owner", "group", "size", "mtime")


class FileResource:
    """Metadata and content of one path."""

    def __init__(self, handle: FileHandle) -> None:
        self.handle = handle
        self._stat: FileStat | None = None
        self._stat_loaded = False

    @classmethod
    async def create(cls, ctx: ResourceContext, path: str) -> "FileResource":
        return cls(ctx.connection.file(path))

    async def stat(self) -> FileStat | None:
        if not self._stat_loaded:
            self._stat = await self.handle.stat()
            self._stat_loaded = True
        return self._stat

    async def exists(self) -> bool:
        return await self.stat() is not None

    async def get(self, key: str) -> Any:
        if key == "content":
            return await self.handle.read()
        info = await self.stat()
        if key in ("file", "directory", "symlink"):
            return info is not None and info.type == key
        if key == "path":
            return self.handle.path
        if info is None or key not in STAT_FIELDS:
            return None
        value = getattr(info, key)
        if key == "mode" and value is not None:
            return format(value, "04o")
        return value

    def describe(self) -> str:
        return f"File {self.handle.path}"
