"""SSH transport implementation, driving the OpenSSH client."""

import logging
import os
import shlex
import tempfile
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from policy_audit.errors import TargetConnectionError
from policy_audit.transports.base import Connection
from policy_audit.transports.models import CommandResult
from policy_audit.transports.process import run_process
from policy_audit.transports.ssh.config import SSHConfig

log = logging.getLogger(__name__)

# OpenSSH reserves this exit status for its own failures
SSH_ERROR_STATUS = 255

# Exit statuses sshpass uses for its own failures
SSHPASS_ERRORS = {
    1: "invalid sshpass arguments",
    2: "conflicting sshpass arguments",
    3: "sshpass runtime error",
    4: "unrecognized response from ssh",
    5: "password rejected",
    6: "host public key is unknown",
}


@dataclass(kw_only=True)
class SSHConnection(Connection):
    """Runs commands over an OpenSSH control-master session.

    The first command opens a master connection under ``control_dir``; later
    commands multiplex over it, so the target is authenticated once per run.
    """

    config: SSHConfig
    control_dir: str = field(repr=False)

    @property
    def ssh_argv(self) -> Sequence[str]:
        argv: list[str] = []
        if self.config.password is not None:
            argv += ["sshpass", "-e"]
        argv += [
            "ssh",
            "-o", "ControlMaster=auto",
            "-o", f"ControlPath={self.control_dir}/%C",
            "-o", "ControlPersist=yes",
            "-o", "StrictHostKeyChecking=no",
            "-o", "UserKnownHostsFile=/dev/null",
            "-o", "GlobalKnownHostsFile=/dev/null",
            "-o", "LogLevel=ERROR",
            "-o", f"ConnectTimeout={self.config.connect_timeout}",
            "-p", str(self.config.port),
            "-l", self.config.user,
        ]  # fmt: skip
        if self.config.password is None:
            argv += ["-o", "BatchMode=yes"]
        for key_file in self.config.key_files:
            argv += ["-i", key_file]
        return argv

    @property
    def env(self) -> Mapping[str, str] | None:
        if self.config.password is None:
            return None
        return {**os.environ, "SSHPASS": self.config.password.get_secret_value()}

    def wrap(self, command: str) -> str:
        if self.config.sudo:
            return f"sudo -n sh -c {shlex.quote(command)}"
        return command

    async def execute(self, command: str) -> CommandResult:
        argv = [*self.ssh_argv, self.config.host, "--", self.wrap(command)]
        result = await run_process(argv, env=self.env)
        if result.exit_status == SSH_ERROR_STATUS:
            raise TargetConnectionError(
                f"SSH connection to {self.descriptor.locator} failed: "
                f"{result.stderr.strip() or 'unknown error'}"
            )
        return result

    async def verify(self) -> None:
        """Authenticate with a no-op command; any failure of it is a connection fault.

        Once the control master is up later commands reuse it, so an exit
        status that sshpass shares with the remote command is only
        unambiguous here.
        """
        result = await self.run_command("true")
        if result.ok:
            return
        reason = result.stderr.strip()
        if self.config.password is not None and result.exit_status in SSHPASS_ERRORS:
            known = SSHPASS_ERRORS[result.exit_status]
            reason = f"{known}: {reason}" if reason else known
        raise TargetConnectionError(
            f"SSH connection to {self.descriptor.locator} failed: "
            f"{reason or f'exit status {result.exit_status}'}"
        )

    async def disconnect(self) -> None:
        argv = [*self.ssh_argv, "-O", "exit", self.config.host]
        result = await run_process(argv, env=self.env)
        if not result.ok:
            log.debug("Closing SSH master failed: %s", result.stderr.strip())

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: SSHConfig
    ) -> AsyncGenerator["SSHConnection", None]:
        """Open a verified SSH session and close the master on exit."""
        with tempfile.TemporaryDirectory(prefix="policy-audit-ssh-") as control_dir:
            connection = cls(
                descriptor=config.target,
                command_timeout=config.command_timeout,
                config=config,
                control_dir=control_dir,
            )
            await connection.verify()
            log.info("SSH session established to %s", config.target.locator)
            try:
                yield connection
            finally:
                await connection.disconnect()
