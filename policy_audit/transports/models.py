"""Data returned by transport operations."""

from dataclasses import dataclass
from typing import Literal, TypeAlias

FileType: TypeAlias = Literal["file", "directory", "symlink", "other"]


@dataclass(frozen=True, kw_only=True)
class CommandResult:
    """Outcome of one command; a non-zero exit status is ordinary data."""

    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


@dataclass(frozen=True, kw_only=True)
class FileStat:
    """Metadata of a file on the target."""

    type: FileType
    mode: int | None = None
    owner: str | None = None
    group: str | None = None
    size: int | None = None
    mtime: int | None = None
