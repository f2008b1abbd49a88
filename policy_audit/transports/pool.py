"""Per-run cache of open connections."""

import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Self

from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.base import DEFAULT_COMMAND_TIMEOUT, Connection
from policy_audit.transports.loading import load_transport_manifest

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class ConnectionPool:
    """Opens each target at most once per run and closes them all at the end."""

    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    _stack: AsyncExitStack = field(default_factory=AsyncExitStack, init=False)
    _connections: dict[tuple[Any, ...], Connection] = field(
        default_factory=dict, init=False
    )

    async def connect(self, descriptor: TargetDescriptor) -> Connection:
        """Return the live connection for a descriptor, opening it on first use.

        Raises:
            ConfigurationError: If the descriptor is invalid for its transport
            TargetConnectionError: If the target cannot be reached

        """
        if (connection := self._connections.get(descriptor.key)) is not None:
            return connection

        manifest = load_transport_manifest(descriptor.scheme)
        config = manifest.config_cls.validated(
            descriptor, command_timeout=self.command_timeout
        )

        log.info("Connecting to %s", descriptor.locator)
        connection = await self._stack.enter_async_context(
            manifest.connection_factory(config)
        )
        self._connections[descriptor.key] = connection
        return connection

    async def close(self) -> None:
        log.debug("Closing %d connection(s)", len(self._connections))
        self._connections.clear()
        await self._stack.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
