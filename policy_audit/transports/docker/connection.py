"""Container exec transport implementation."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from policy_audit.errors import TargetConnectionError
from policy_audit.transports.base import Connection
from policy_audit.transports.docker.config import DockerConfig
from policy_audit.transports.models import CommandResult
from policy_audit.transports.process import run_process

log = logging.getLogger(__name__)

DAEMON_ERRORS = ("Error response from daemon", "Cannot connect to the Docker daemon")


@dataclass(kw_only=True)
class DockerConnection(Connection):
    """Runs commands in a running container through ``docker exec``."""

    config: DockerConfig

    async def execute(self, command: str) -> CommandResult:
        result = await run_process(
            [self.config.executable, "exec", self.config.container, "/bin/sh", "-c", command]
        )
        if result.stderr.startswith(DAEMON_ERRORS):
            raise TargetConnectionError(
                f"Container {self.config.container} unavailable: {result.stderr.strip()}"
            )
        return result

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: DockerConfig
    ) -> AsyncGenerator["DockerConnection", None]:
        """Create a connection after checking the container is running."""
        state = await run_process(
            [
                config.executable,
                "inspect",
                "--format",
                "{{.State.Running}}",
                config.container,
            ]
        )
        if state.stdout.strip() != "true":
            reason = state.stderr.strip() or "container is not running"
            raise TargetConnectionError(
                f"Cannot attach to container {config.container}: {reason}"
            )
        log.info("Attached to container %s", config.container)
        yield cls(
            descriptor=config.target,
            command_timeout=config.command_timeout,
            config=config,
        )
