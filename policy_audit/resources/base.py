"""Resource contract and the small capabilities resources compose."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, NoReturn, Protocol, runtime_checkable

from policy_audit.errors import ResourceSkipped
from policy_audit.filter_table import FilterTable, TableSchema
from policy_audit.models.platform import PlatformInfo
from policy_audit.transports.base import Connection


@runtime_checkable
class Resource(Protocol):
    """A semantic view of target state bound to one connection."""

    def describe(self) -> str:
        """Human-readable name used in test descriptions."""
        ...

    async def exists(self) -> bool:
        ...

    async def get(self, key: str) -> Any:
        """Look up an attribute; unknown keys return None."""
        ...


@runtime_checkable
class TableBacked(Protocol):
    """Resource exposing its data as a filter table."""

    async def table(self) -> FilterTable:
        ...


@runtime_checkable
class StatementQueryable(Protocol):
    """Resource answering ``have_statement`` matchers."""

    async def has_statement(self, criteria: Mapping[str, Any] | None = None) -> bool:
        ...


@dataclass(frozen=True, kw_only=True)
class ResourceContext:
    """What a resource constructor receives besides its own parameters."""

    connection: Connection
    platform: PlatformInfo

    def skip(self, reason: str) -> NoReturn:
        """Declare the resource skipped; no further constructor code runs."""
        raise ResourceSkipped(reason)


class TableSource:
    """Fetches rows once and serves the cached table afterwards."""

    def __init__(
        self,
        schema: TableSchema,
        loader: Callable[[], Awaitable[list[Mapping[str, Any]]]],
    ) -> None:
        self.schema = schema
        self._loader = loader
        self._table: FilterTable | None = None

    async def get(self) -> FilterTable:
        if self._table is None:
            self._table = self.schema.table(await self._loader())
        return self._table


class MappingSource:
    """Loads a mapping once; keys are looked up by dotted path."""

    def __init__(self, loader: Callable[[], Awaitable[Mapping[str, Any]]]) -> None:
        self._loader = loader
        self._data: Mapping[str, Any] | None = None

    async def get(self) -> Mapping[str, Any]:
        if self._data is None:
            self._data = await self._loader()
        return self._data

    async def lookup(self, key: str) -> Any:
        return lookup(await self.get(), key)


def lookup(data: Any, key: str) -> Any:
    """Resolve ``a.b.0.c`` against nested mappings and lists, None if absent."""
    if isinstance(data, Mapping) and key in data:
        return data[key]
    current = data
    for part in key.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
    return current
