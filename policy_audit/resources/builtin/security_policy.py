"""The ``security_policy`` resource (Windows only)."""

import logging
import re
from typing import Any

from policy_audit.resources.base import ResourceContext
from policy_audit.transports.base import Connection

log = logging.getLogger(__name__)

EXPORT_FILE = "win_secpol.cfg"
EXPORT_COMMAND = f"secedit /export /cfg {EXPORT_FILE}"
READ_COMMAND = f"type {EXPORT_FILE}"
CLEANUP_COMMAND = f"del {EXPORT_FILE}"

INTEGER = re.compile(r"^\d+$")


def parse_policy(text: str) -> dict[str, str]:
    """Parse ``Key = Value`` lines of a secedit export, sections ignored."""
    policy: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(("[", ";")) or "=" not in line:
            continue
        key, _, value = line.partition("=")
        policy[key.strip()] = value.strip()
    return policy


class SecurityPolicyResource:
    """Local security policy as exported by ``secedit``.

    The export runs once per instance, on first lookup.
    """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self._policy: dict[str, str] | None = None

    @classmethod
    async def create(cls, ctx: ResourceContext) -> "SecurityPolicyResource":
        return cls(ctx.connection)

    async def policy(self) -> dict[str, str]:
        if self._policy is None:
            await self.connection.run_command(EXPORT_COMMAND)
            result = await self.connection.run_command(READ_COMMAND)
            await self.connection.run_command(CLEANUP_COMMAND)
            if not result.ok:
                log.warning("Could not read security policy export: %s", result.stderr.strip())
            self._policy = parse_policy(result.stdout) if result.ok else {}
        return self._policy

    async def exists(self) -> bool:
        return bool(await self.policy())

    async def get(self, key: str) -> Any:
        value = (await self.policy()).get(key)
        if value is not None and INTEGER.match(value):
            return int(value)
        return value

    def describe(self) -> str:
        return "Security Policy"
