"""The ``processes`` table resource."""

import logging
from collections.abc import Mapping
from typing import Any

from policy_audit.filter_table import FilterTable, TableSchema
from policy_audit.resources.base import ResourceContext, TableSource
from policy_audit.transports.base import Connection

log = logging.getLogger(__name__)

PROCESS_SCHEMA = TableSchema("pid", "user", "stat", "command")

PS_COMMAND = "ps axo pid=,user=,stat=,args="


def parse_ps_line(line: str) -> Mapping[str, Any] | None:
    parts = line.split(None, 3)
    if len(parts) < 3:
        return None
    pid, user, state = parts[:3]
    try:
        pid_value = int(pid)
    except ValueError:
        return None
    return {
        "pid": pid_value,
        "user": user,
        "stat": state,
        "command": parts[3] if len(parts) == 4 else "",
    }


class ProcessesResource:
    """Process list of a Unix target, optionally narrowed to one command."""

    def __init__(self, connection: Connection, grep: str | None = None) -> None:
        self.connection = connection
        self.grep = grep
        self._source = TableSource(PROCESS_SCHEMA, self._load)

    @classmethod
    async def create(
        cls, ctx: ResourceContext, grep: str | None = None
    ) -> "ProcessesResource":
        return cls(ctx.connection, grep)

    async def _load(self) -> list[Mapping[str, Any]]:
        result = await self.connection.run_command(PS_COMMAND)
        if not result.ok:
            log.debug("ps failed: %s", result.stderr.strip())
            return []
        rows = [row for line in result.stdout.splitlines() if (row := parse_ps_line(line))]
        if self.grep is None:
            return rows
        return [row for row in rows if self.grep in row["command"]]

    async def table(self) -> FilterTable:
        return await self._source.get()

    async def exists(self) -> bool:
        return (await self.table()).exists

    async def get(self, key: str) -> Any:
        table = await self.table()
        if key in PROCESS_SCHEMA.fields:
            return table.column(key)
        if key == "count":
            return table.count
        return None

    def describe(self) -> str:
        if self.grep:
            return f"Processes {self.grep}"
        return "Processes"
