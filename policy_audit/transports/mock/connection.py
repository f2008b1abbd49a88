"""Mock transport implementation replaying recorded target state."""

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from policy_audit.models.platform import PlatformInfo
from policy_audit.transports import detection
from policy_audit.transports.base import Connection
from policy_audit.transports.files import FileHandle
from policy_audit.transports.mock.config import MockConfig
from policy_audit.transports.mock.models import MockData, MockFile
from policy_audit.transports.models import CommandResult, FileStat


class ReplayFile(FileHandle):
    """File served from mock data; every access is recorded."""

    def __init__(self, connection: "MockConnection", path: str) -> None:
        super().__init__(path)
        self.connection = connection

    @property
    def entry(self) -> MockFile | None:
        self.connection.calls.append(f"file {self.path}")
        return self.connection.data.files.get(self.path)

    async def stat(self) -> FileStat | None:
        if (entry := self.entry) is None:
            return None
        size = entry.size
        if size is None and entry.content is not None:
            size = len(entry.content.encode())
        return FileStat(
            type=entry.type,
            mode=entry.mode,
            owner=entry.owner,
            group=entry.group,
            size=size,
            mtime=entry.mtime,
        )

    async def read(self) -> str | None:
        if (entry := self.entry) is None or entry.type == "directory":
            return None
        return entry.content


@dataclass(kw_only=True)
class MockConnection(Connection):
    """Answers commands and file reads from recorded data.

    Unknown commands exit with status 127. ``calls`` lists every command and
    file access in order.
    """

    data: MockData = field(default_factory=MockData)
    calls: list[str] = field(default_factory=list)

    async def execute(self, command: str) -> CommandResult:
        self.calls.append(command)
        recorded = self.data.commands.get(command)
        if recorded is None:
            return CommandResult(
                stdout="", stderr=f"{command}: command not found", exit_status=127
            )
        return CommandResult(
            stdout=recorded.stdout,
            stderr=recorded.stderr,
            exit_status=recorded.exit_status,
        )

    def create_file(self, path: str) -> FileHandle:
        return ReplayFile(self, path)

    def implied_platform(self) -> PlatformInfo | None:
        return self.data.platform

    @property
    def platform_probes(self) -> Sequence[detection.Probe]:
        if self.data.platform is not None:
            return ()
        return super().platform_probes

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: MockConfig
    ) -> AsyncGenerator["MockConnection", None]:
        """Create a mock connection over the configured data."""
        yield cls(
            descriptor=config.target,
            command_timeout=config.command_timeout,
            data=config.data,
        )
