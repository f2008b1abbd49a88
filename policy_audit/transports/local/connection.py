"""Local transport implementation."""

import sys
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from policy_audit.transports.base import Connection
from policy_audit.transports.files import FileHandle, file_type_from_mode
from policy_audit.transports.local.config import LocalConfig
from policy_audit.transports.models import CommandResult, FileStat
from policy_audit.transports.process import run_process
from policy_audit.transports.quoting import ShellDialect


class LocalFile(FileHandle):
    """File on the local filesystem, read without spawning processes."""

    async def stat(self) -> FileStat | None:
        path = Path(self.path)
        try:
            info = path.lstat()
        except OSError:
            return None
        return FileStat(
            type=file_type_from_mode(info.st_mode),
            mode=info.st_mode & 0o7777,
            owner=_lookup(path.owner),
            group=_lookup(path.group),
            size=info.st_size,
            mtime=int(info.st_mtime),
        )

    async def read(self) -> str | None:
        try:
            return Path(self.path).read_text(errors="replace")
        except OSError:
            return None


def _lookup(getter: Callable[[], str]) -> str | None:
    try:
        return getter()
    except (KeyError, NotImplementedError, OSError):
        return None


@dataclass(kw_only=True)
class LocalConnection(Connection):
    """Runs commands through the local shell."""

    async def execute(self, command: str) -> CommandResult:
        if self.dialect is ShellDialect.POWERSHELL:
            argv = ["powershell", "-NoProfile", "-NonInteractive", "-Command", command]
        else:
            argv = ["/bin/sh", "-c", command]
        return await run_process(argv)

    def create_file(self, path: str) -> FileHandle:
        return LocalFile(path)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: LocalConfig
    ) -> AsyncGenerator["LocalConnection", None]:
        """Create a connection to the local machine."""
        dialect = ShellDialect.POWERSHELL if sys.platform == "win32" else ShellDialect.POSIX
        yield cls(
            descriptor=config.target,
            command_timeout=config.command_timeout,
            dialect=dialect,
        )
