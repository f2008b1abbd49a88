"""File access on targets, expressed as shell commands."""

import json
import logging
import stat
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from policy_audit.transports.models import FileStat, FileType

if TYPE_CHECKING:
    from policy_audit.transports.base import Connection

log = logging.getLogger(__name__)

GNU_STAT_FORMAT = "%f|%U|%G|%s|%Y"
BSD_STAT_FORMAT = "%Xp|%Su|%Sg|%z|%m"

WINDOWS_STAT_SCRIPT = """
$i = Get-Item -LiteralPath {path} -Force -ErrorAction Stop
$owner = (Get-Acl -LiteralPath {path}).Owner
[pscustomobject]@{{
  type = $(if ($i.PSIsContainer) {{ 'directory' }} elseif ($i.LinkType) {{ 'symlink' }} else {{ 'file' }})
  size = $(if ($i.PSIsContainer) {{ $null }} else {{ $i.Length }})
  mtime = [int][double]::Parse((Get-Date $i.LastWriteTimeUtc -UFormat %s))
  owner = $owner
}} | ConvertTo-Json -Compress
"""


class FileHandle(ABC):
    """Read-only view of one path on a target.

    A missing file is a normal negative result: ``stat`` and ``read`` return
    ``None`` instead of raising.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    @abstractmethod
    async def stat(self) -> FileStat | None:
        """Return file metadata, or None if the path does not exist."""

    @abstractmethod
    async def read(self) -> str | None:
        """Return file content, or None if it cannot be read."""

    async def exists(self) -> bool:
        return await self.stat() is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"


def file_type_from_mode(raw_mode: int) -> FileType:
    if stat.S_ISLNK(raw_mode):
        return "symlink"
    if stat.S_ISDIR(raw_mode):
        return "directory"
    if stat.S_ISREG(raw_mode):
        return "file"
    return "other"


def parse_stat_line(line: str) -> FileStat | None:
    """Parse ``hexmode|owner|group|size|mtime`` as printed by stat(1)."""
    parts = line.strip().split("|")
    if len(parts) != 5:
        return None
    raw_mode, owner, group, size, mtime = parts
    try:
        mode = int(raw_mode, 16)
        return FileStat(
            type=file_type_from_mode(mode),
            mode=stat.S_IMODE(mode),
            owner=owner or None,
            group=group or None,
            size=int(size),
            mtime=int(mtime),
        )
    except ValueError:
        log.debug("Unparsable stat output: %r", line)
        return None


class PosixFile(FileHandle):
    """File reached through a POSIX shell."""

    def __init__(self, connection: "Connection", path: str) -> None:
        super().__init__(path)
        self.connection = connection

    async def stat(self) -> FileStat | None:
        path = self.connection.quote(self.path)
        result = await self.connection.run_command(
            f"stat -c '{GNU_STAT_FORMAT}' -- {path} 2>/dev/null"
            f" || stat -f '{BSD_STAT_FORMAT}' {path}"
        )
        if not result.ok:
            return None
        return parse_stat_line(result.stdout)

    async def read(self) -> str | None:
        result = await self.connection.run_command(
            f"cat -- {self.connection.quote(self.path)}"
        )
        return result.stdout if result.ok else None


class WindowsFile(FileHandle):
    """File reached through PowerShell."""

    def __init__(self, connection: "Connection", path: str) -> None:
        super().__init__(path)
        self.connection = connection

    async def stat(self) -> FileStat | None:
        script = WINDOWS_STAT_SCRIPT.format(path=self.connection.quote(self.path))
        result = await self.connection.run_command(script)
        if not result.ok or not result.stdout.strip():
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            log.debug("Unparsable Get-Item output for %s", self.path)
            return None
        return FileStat(
            type=data.get("type", "other"),
            owner=data.get("owner"),
            size=data.get("size"),
            mtime=data.get("mtime"),
        )

    async def read(self) -> str | None:
        result = await self.connection.run_command(
            "Get-Content -LiteralPath "
            f"{self.connection.quote(self.path)} -Raw -ErrorAction Stop"
        )
        return result.stdout if result.ok else None
