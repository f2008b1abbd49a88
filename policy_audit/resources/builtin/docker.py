"""The ``docker_containers`` table and single ``docker_container`` resources."""

import json
import logging
from collections.abc import Mapping
from typing import Any

from policy_audit.filter_table import FilterTable, Row, TableSchema
from policy_audit.resources.base import ResourceContext, TableSource
from policy_audit.transports.base import Connection

log = logging.getLogger(__name__)

CONTAINER_SCHEMA = TableSchema(
    "id", "image", "names", "status", "ports", "labels", "command"
)

PS_COMMAND = "docker ps -a --no-trunc --format '{{json .}}'"


def parse_labels(raw: str) -> list[str]:
    return [label for label in raw.split(",") if label] if raw else []


def parse_container(line: str) -> Mapping[str, Any] | None:
    """Map one ``docker ps --format '{{json .}}'`` line onto the table schema."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        log.debug("Skipping unparsable docker ps line: %r", line)
        return None
    return {
        "id": data.get("ID"),
        "image": data.get("Image"),
        "names": data.get("Names"),
        "status": data.get("Status"),
        "ports": data.get("Ports"),
        "labels": parse_labels(data.get("Labels", "")),
        "command": (data.get("Command") or "").strip('"'),
    }


def split_image(image: str) -> tuple[str, str]:
    """Split ``registry:5000/repo:tag`` into repo and tag (empty if untagged)."""
    if ":" not in image.rsplit("/", 1)[-1]:
        return image, ""
    repo, _, tag = image.rpartition(":")
    return repo, tag


async def require_docker(ctx: ResourceContext) -> None:
    result = await ctx.connection.run_command("command -v docker")
    if not result.ok:
        ctx.skip("The `docker` binary is not available on the target")


class DockerContainersResource:
    """All containers known to the target's Docker daemon."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self._source = TableSource(CONTAINER_SCHEMA, self._load)

    @classmethod
    async def create(cls, ctx: ResourceContext) -> "DockerContainersResource":
        await require_docker(ctx)
        return cls(ctx.connection)

    async def _load(self) -> list[Mapping[str, Any]]:
        result = await self.connection.run_command(PS_COMMAND)
        if not result.ok:
            log.warning("docker ps failed: %s", result.stderr.strip())
            return []
        return [
            row
            for line in result.stdout.splitlines()
            if line.strip() and (row := parse_container(line))
        ]

    async def table(self) -> FilterTable:
        return await self._source.get()

    async def running(self) -> FilterTable:
        return (await self.table()).where(status=lambda s: bool(s) and s.startswith("Up"))

    async def exists(self) -> bool:
        return (await self.table()).exists

    async def get(self, key: str) -> Any:
        if key in CONTAINER_SCHEMA.fields:
            return (await self.table()).column(key)
        if key == "running_ids":
            return (await self.running()).column("id")
        return None

    def describe(self) -> str:
        return "Docker Containers"


class DockerContainerResource:
    """One container, addressed by name or id prefix."""

    def __init__(self, containers: DockerContainersResource, name: str) -> None:
        self.containers = containers
        self.name = name
        self._row: Row | None = None
        self._looked_up = False

    @classmethod
    async def create(
        cls, ctx: ResourceContext, name: str | None = None, id: str | None = None
    ) -> "DockerContainerResource":
        ref = name or id
        if not ref:
            raise ValueError("docker_container requires a name or id")
        await require_docker(ctx)
        return cls(DockerContainersResource(ctx.connection), ref)

    async def row(self) -> Row | None:
        if not self._looked_up:
            table = await self.containers.table()
            found = table.where(
                lambda r: r["names"] == self.name
                or (r["id"] or "").startswith(self.name)
            )
            self._row = found.rows[0] if found.rows else None
            self._looked_up = True
        return self._row

    async def exists(self) -> bool:
        return await self.row() is not None

    async def get(self, key: str) -> Any:
        row = await self.row()
        if row is None:
            return None
        repo, tag = split_image(row["image"] or "")
        match key:
            case "running":
                return bool(row["status"]) and row["status"].startswith("Up")
            case "repo":
                return repo
            case "tag":
                return tag or None
        return row[key]

    def describe(self) -> str:
        return f"Docker Container {self.name}"
