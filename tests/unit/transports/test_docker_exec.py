"""Tests for the container exec transport."""

from unittest.mock import AsyncMock, patch

import pytest

from policy_audit.errors import ConfigurationError, TargetConnectionError
from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.docker import DockerConfig, DockerConnection
from policy_audit.transports.models import CommandResult

RUN_PROCESS = "policy_audit.transports.docker.connection.run_process"


def result(stdout: str = "", stderr: str = "", exit_status: int = 0) -> CommandResult:
    return CommandResult(stdout=stdout, stderr=stderr, exit_status=exit_status)


@pytest.fixture
def config() -> DockerConfig:
    return DockerConfig.validated(TargetDescriptor.parse("docker://web-1"))


class TestDockerConfig:
    """Tests for DockerConfig."""

    def test_container_from_host(self, config: DockerConfig) -> None:
        assert config.container == "web-1"
        assert config.executable == "docker"

    def test_custom_executable(self) -> None:
        config = DockerConfig.validated(
            TargetDescriptor.parse("docker://web-1?executable=podman")
        )

        assert config.executable == "podman"

    def test_requires_container(self) -> None:
        with pytest.raises(ConfigurationError, match="container"):
            DockerConfig.validated(TargetDescriptor(scheme="docker"))


class TestDockerConnection:
    """Tests for DockerConnection."""

    async def test_executes_through_docker_exec(self, config: DockerConfig) -> None:
        run_process = AsyncMock(side_effect=[result("true\n"), result("hi\n")])

        with patch(RUN_PROCESS, run_process):
            async with DockerConnection.from_config(config) as connection:
                output = await connection.run_command("echo hi")

        assert output.stdout == "hi\n"
        argv = run_process.await_args_list[1].args[0]
        assert argv == ["docker", "exec", "web-1", "/bin/sh", "-c", "echo hi"]

    async def test_stopped_container_fails_to_connect(self, config: DockerConfig) -> None:
        with (
            patch(RUN_PROCESS, AsyncMock(return_value=result("false\n"))),
            pytest.raises(TargetConnectionError, match="not running"),
        ):
            async with DockerConnection.from_config(config):
                pass

    async def test_daemon_error_is_connection_error(self, config: DockerConfig) -> None:
        run_process = AsyncMock(
            side_effect=[
                result("true\n"),
                result(stderr="Error response from daemon: container gone", exit_status=1),
            ]
        )

        with patch(RUN_PROCESS, run_process):
            async with DockerConnection.from_config(config) as connection:
                with pytest.raises(TargetConnectionError, match="container gone"):
                    await connection.run_command("id")

    async def test_command_failure_is_data(self, config: DockerConfig) -> None:
        run_process = AsyncMock(
            side_effect=[result("true\n"), result(stderr="no such file", exit_status=1)]
        )

        with patch(RUN_PROCESS, run_process):
            async with DockerConnection.from_config(config) as connection:
                output = await connection.run_command("cat /missing")

        assert output.exit_status == 1
