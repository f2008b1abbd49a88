"""Abstract base class for target connections."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from policy_audit.errors import TargetConnectionError
from policy_audit.models.platform import UNKNOWN_PLATFORM, PlatformInfo
from policy_audit.models.target import TargetDescriptor
from policy_audit.transports import detection
from policy_audit.transports.files import FileHandle, PosixFile, WindowsFile
from policy_audit.transports.models import CommandResult
from policy_audit.transports.quoting import ShellDialect, join, quote

log = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 600.0


@dataclass(kw_only=True)
class Connection(ABC):
    """Live session bound to one target descriptor.

    Subclasses only implement ``execute``. Timeouts, file handles and platform
    detection are shared. Transport-level faults raise
    ``TargetConnectionError``; a failing command never does.
    """

    descriptor: TargetDescriptor
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    dialect: ShellDialect = ShellDialect.POSIX
    _platform: PlatformInfo | None = field(default=None, init=False, repr=False)
    _files: dict[str, FileHandle] = field(default_factory=dict, init=False, repr=False)

    @abstractmethod
    async def execute(self, command: str) -> CommandResult:
        """Run a command line on the target without any timeout handling."""

    async def run_command(self, command: str) -> CommandResult:
        """Run a command line, bounded by the connection's command timeout.

        A command is atomic: cancelling the caller lets the command in flight
        finish before the cancellation propagates. Only the timeout interrupts
        it, which cancels (and so kills) the command.
        """
        log.debug("[%s] %s", self.descriptor.locator, command)
        task = asyncio.create_task(self.execute(command))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.command_timeout)
        except asyncio.CancelledError:
            log.info("Cancelled, waiting for the running command to finish: %s", command)
            await asyncio.wait({task})
            if not task.cancelled() and (error := task.exception()) is not None:
                log.debug("Command failed during cancellation: %s", error)
            raise

        if not done:
            task.cancel()
            await asyncio.wait({task})
            if not task.cancelled():
                return task.result()
            raise TargetConnectionError(
                f"Command timed out after {self.command_timeout}s on "
                f"{self.descriptor.locator}: {command}"
            )
        return task.result()

    async def run(self, *argv: str) -> CommandResult:
        """Run an argument vector, quoted for the target's shell."""
        return await self.run_command(join(argv, self.dialect))

    def quote(self, arg: str) -> str:
        return quote(arg, self.dialect)

    def file(self, path: str) -> FileHandle:
        """Return a (memoized) handle for a path on the target."""
        if path not in self._files:
            self._files[path] = self.create_file(path)
        return self._files[path]

    def create_file(self, path: str) -> FileHandle:
        if self.dialect is ShellDialect.POSIX:
            return PosixFile(self, path)
        return WindowsFile(self, path)

    def implied_platform(self) -> PlatformInfo | None:
        """Platform fixed by the backend itself, used when no probe matches."""
        return None

    @property
    def platform_probes(self) -> Sequence[detection.Probe]:
        if self.dialect is ShellDialect.POSIX:
            return detection.POSIX_PROBES
        return detection.WINDOWS_PROBES

    async def platform(self) -> PlatformInfo:
        """Detect the target platform once and cache it for this connection."""
        if self._platform is None:
            detected = await detection.detect_platform(
                self, self.platform_probes, self.implied_platform()
            )
            if detected is None:
                log.warning(
                    "Could not detect platform of %s", self.descriptor.locator
                )
                detected = UNKNOWN_PLATFORM
            log.info("Detected platform %s on %s", detected, self.descriptor.locator)
            self._platform = detected
        return self._platform
