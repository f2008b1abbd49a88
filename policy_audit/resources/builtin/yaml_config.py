"""The ``yaml`` structured configuration resource."""

from collections.abc import Mapping
from typing import Any

import yaml

from policy_audit.resources.base import MappingSource, ResourceContext


class YamlResource:
    """A YAML document read from a file, a command's output or inline content.

    Keys are looked up by dotted path: ``get("server.ports.0")``. The document
    is parsed during construction, so a broken document fails the instance
    instead of every assertion on it.
    """

    def __init__(self, source_label: str, content: str) -> None:
        self.source_label = source_label
        self.content = content
        self._source = MappingSource(self._parse)

    @classmethod
    async def create(
        cls,
        ctx: ResourceContext,
        path: str | None = None,
        *,
        command: str | None = None,
        content: str | None = None,
    ) -> "YamlResource":
        if path is not None:
            resource = cls(path, await read_file(ctx, path))
        elif command is not None:
            result = await ctx.connection.run_command(command)
            resource = cls(f"command `{command}`", result.stdout)
        elif content is not None:
            resource = cls("content", content)
        else:
            raise ValueError("yaml requires a path, command or content")

        try:
            await resource.mapping()
        except yaml.YAMLError as e:
            raise ValueError(f"Unable to parse {resource.source_label}: {e}") from e
        return resource

    async def _parse(self) -> Mapping[str, Any]:
        data = yaml.safe_load(self.content)
        if data is None:
            return {}
        if not isinstance(data, Mapping):
            return {"value": data}
        return data

    async def mapping(self) -> Mapping[str, Any]:
        return await self._source.get()

    async def exists(self) -> bool:
        return bool(await self.mapping())

    async def get(self, key: str) -> Any:
        return await self._source.lookup(key)

    def describe(self) -> str:
        return f"YAML {self.source_label}"


async def read_file(ctx: ResourceContext, path: str) -> str:
    handle = ctx.connection.file(path)
    if not await handle.exists():
        ctx.skip(f"Can't find file `{path}`")
    content = await handle.read()
    if content is None:
        ctx.skip(f"Can't read file `{path}`")
    return content
