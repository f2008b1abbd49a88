"""Resource instances and their terminal construction status."""

from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from policy_audit.filter_table import FilterTable, TableSchema
from policy_audit.resources.base import Resource, TableBacked

ResourceStatus: TypeAlias = Literal["active", "skipped", "failed"]


@dataclass(frozen=True, kw_only=True)
class ResourceInstance:
    """A resource bound to one connection, with its status fixed at creation.

    Accessors on a skipped or failed instance return neutral values instead of
    raising, so callers never need to check the status first.
    """

    name: str
    label: str
    status: ResourceStatus
    resource: Resource | None = None
    reason: str | None = None
    error: BaseException | None = None
    schema: TableSchema | None = None

    @classmethod
    def active(
        cls, name: str, label: str, resource: Resource, schema: TableSchema | None = None
    ) -> "ResourceInstance":
        return cls(name=name, label=label, status="active", resource=resource, schema=schema)

    @classmethod
    def skipped(
        cls, name: str, label: str, reason: str, schema: TableSchema | None = None
    ) -> "ResourceInstance":
        return cls(name=name, label=label, status="skipped", reason=reason, schema=schema)

    @classmethod
    def failed(
        cls, name: str, label: str, error: BaseException, schema: TableSchema | None = None
    ) -> "ResourceInstance":
        return cls(
            name=name,
            label=label,
            status="failed",
            reason=str(error),
            error=error,
            schema=schema,
        )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def describe(self) -> str:
        if self.resource is not None:
            return self.resource.describe()
        return self.label

    async def exists(self) -> bool:
        if self.resource is None:
            return False
        return await self.resource.exists()

    async def get(self, key: str) -> Any:
        if self.resource is None:
            return None
        return await self.resource.get(key)

    async def table(self) -> FilterTable | None:
        if isinstance(self.resource, TableBacked):
            return await self.resource.table()
        if self.schema is not None:
            return self.schema.empty()
        return None
