"""WinRM transport implementation."""

import contextlib
import logging
import xml.etree.ElementTree as ET
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TypeVar

import aiohttp

from policy_audit.errors import TargetConnectionError
from policy_audit.models.platform import WINDOWS_PLATFORM, PlatformInfo
from policy_audit.transports.base import Connection
from policy_audit.transports.models import CommandResult
from policy_audit.transports.quoting import ShellDialect
from policy_audit.transports.winrm import soap
from policy_audit.transports.winrm.config import WinRMConfig

log = logging.getLogger(__name__)

T = TypeVar("T")

SOAP_HEADERS = {"Content-Type": "application/soap+xml;charset=UTF-8"}


class ReceiveTimeout(Exception):  # noqa: N818
    """Receive saw no output within the operation timeout; poll again."""


@dataclass(kw_only=True)
class WinRMConnection(Connection):
    """Runs PowerShell through a WS-Management remote shell.

    One remote shell is opened per connection; every command runs in it and
    the shell is deleted when the connection closes.
    """

    config: WinRMConfig
    session: aiohttp.ClientSession = field(repr=False)
    shell_id: str = ""
    dialect: ShellDialect = ShellDialect.POWERSHELL

    def implied_platform(self) -> PlatformInfo | None:
        return WINDOWS_PLATFORM

    async def _post(
        self,
        action: str,
        body: str = "",
        *,
        shell_id: str | None = None,
        options: dict[str, str] | None = None,
    ) -> str:
        message = soap.envelope(
            self.config.endpoint,
            action,
            body,
            timeout=self.config.operation_timeout,
            shell_id=shell_id,
            options=options,
        )
        try:
            async with self.session.post(
                self.config.endpoint,
                data=message,
                headers=SOAP_HEADERS,
                ssl=not self.config.self_signed,
            ) as response:
                text = await response.text()
                if response.status == 401:
                    raise TargetConnectionError(
                        f"WinRM authentication failed for {self.config.user} "
                        f"at {self.config.endpoint}"
                    )
                if response.status != 200:
                    if soap.RECEIVE_TIMEOUT_CODE in text:
                        raise ReceiveTimeout()
                    raise TargetConnectionError(
                        f"WinRM request to {self.config.endpoint} failed "
                        f"({response.status}): {soap.parse_fault(text)}"
                    )
                return text
        except aiohttp.ClientError as e:
            raise TargetConnectionError(
                f"Cannot reach WinRM endpoint {self.config.endpoint}: {e}"
            ) from e

    async def open_shell(self) -> None:
        response = await self._post(
            soap.ACTION_CREATE,
            soap.create_shell_body(),
            options={"WINRS_NOPROFILE": "FALSE", "WINRS_CODEPAGE": "65001"},
        )
        self.shell_id = self._parse(soap.parse_shell_id, response)
        log.info("WinRM shell %s opened on %s", self.shell_id, self.config.host)

    async def close_shell(self) -> None:
        if not self.shell_id:
            return
        with contextlib.suppress(TargetConnectionError):
            await self._post(soap.ACTION_DELETE, shell_id=self.shell_id)
        self.shell_id = ""

    async def execute(self, command: str) -> CommandResult:
        response = await self._post(
            soap.ACTION_COMMAND,
            soap.command_body("powershell", soap.powershell_arguments(command)),
            shell_id=self.shell_id,
            options={"WINRS_CONSOLEMODE_STDIN": "TRUE", "WINRS_SKIP_CMD_SHELL": "FALSE"},
        )
        command_id = self._parse(soap.parse_command_id, response)

        stdout, stderr = bytearray(), bytearray()
        exit_code: int | None = None
        try:
            while True:
                try:
                    response = await self._post(
                        soap.ACTION_RECEIVE,
                        soap.receive_body(command_id),
                        shell_id=self.shell_id,
                    )
                except ReceiveTimeout:
                    continue
                chunk = self._parse(soap.parse_receive, response)
                stdout += chunk.stdout
                stderr += chunk.stderr
                if chunk.done:
                    exit_code = chunk.exit_code
                    break
        finally:
            with contextlib.suppress(TargetConnectionError, ReceiveTimeout):
                await self._post(
                    soap.ACTION_SIGNAL,
                    soap.signal_body(command_id),
                    shell_id=self.shell_id,
                )

        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=soap.clean_clixml(stderr.decode("utf-8", errors="replace")),
            exit_status=exit_code if exit_code is not None else 0,
        )

    def _parse(self, parser: Callable[[str], T], xml: str) -> T:
        try:
            return parser(xml)
        except (ValueError, ET.ParseError) as e:
            raise TargetConnectionError(
                f"Unexpected WinRM response from {self.config.endpoint}: {e}"
            ) from e

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: WinRMConfig
    ) -> AsyncGenerator["WinRMConnection", None]:
        """Open a remote shell with a managed HTTP session."""
        auth = aiohttp.BasicAuth(config.user, config.password.get_secret_value())
        timeout = aiohttp.ClientTimeout(total=config.operation_timeout + 30)
        async with aiohttp.ClientSession(auth=auth, timeout=timeout) as session:
            connection = cls(
                descriptor=config.target,
                command_timeout=config.command_timeout,
                config=config,
                session=session,
            )
            await connection.open_shell()
            try:
                yield connection
            finally:
                await connection.close_shell()
