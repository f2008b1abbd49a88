"""The ``command`` resource: run a command and inspect its output."""

from typing import Any

from policy_audit.resources.base import ResourceContext
from policy_audit.transports.base import Connection
from policy_audit.transports.models import CommandResult
from policy_audit.transports.quoting import ShellDialect


class CommandResource:
    """Runs a command on first access and exposes stdout, stderr, exit_status."""

    def __init__(self, connection: Connection, command: str) -> None:
        self.connection = connection
        self.command = command
        self._result: CommandResult | None = None

    @classmethod
    async def create(cls, ctx: ResourceContext, command: str) -> "CommandResource":
        return cls(ctx.connection, command)

    async def result(self) -> CommandResult:
        if self._result is None:
            self._result = await self.connection.run_command(self.command)
        return self._result

    async def exists(self) -> bool:
        """Whether the command's executable is available on the target."""
        executable = self.command.split()[0] if self.command.strip() else ""
        if not executable:
            return False
        if self.connection.dialect is ShellDialect.POSIX:
            probe = f"command -v {self.connection.quote(executable)}"
        else:
            probe = f"Get-Command {self.connection.quote(executable)} -ErrorAction Stop"
        return (await self.connection.run_command(probe)).ok

    async def get(self, key: str) -> Any:
        result = await self.result()
        match key:
            case "stdout":
                return result.stdout
            case "stderr":
                return result.stderr
            case "exit_status":
                return result.exit_status
        return None

    def describe(self) -> str:
        return f"Command: `{self.command}`"
