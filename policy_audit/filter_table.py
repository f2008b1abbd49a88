"""Chainable, immutable tables shared by list-style resources."""

import re
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeAlias

Predicate: TypeAlias = Callable[["Row"], bool]


class UnknownFieldError(KeyError):
    """Raised when projecting a field the table schema does not declare."""


class Row(Mapping[str, Any]):
    """One table row; a missing field reads as None instead of raising."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values: Mapping[str, Any] = MappingProxyType(dict(values))

    def __getitem__(self, key: str) -> Any:
        return self._values.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Row):
            return dict(self._values) == dict(other._values)
        if isinstance(other, Mapping):
            return dict(self._values) == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Row({dict(self._values)!r})"


def matches(value: Any, criterion: Any) -> bool:
    """Check one field value against a ``where`` criterion.

    Compiled patterns search string values, callables are applied to the
    value, anything else compares for equality.
    """
    if isinstance(criterion, re.Pattern):
        return value is not None and criterion.search(str(value)) is not None
    if callable(criterion):
        return bool(criterion(value))
    return bool(value == criterion)


@dataclass(frozen=True)
class TableSchema:
    """Ordered field list a family of tables is built over."""

    fields: tuple[str, ...]

    def __init__(self, *fields: str) -> None:
        if len(set(fields)) != len(fields):
            raise ValueError(f"Duplicate field in table schema: {fields}")
        object.__setattr__(self, "fields", tuple(fields))

    def table(self, rows: Iterable[Mapping[str, Any]]) -> "FilterTable":
        return FilterTable(schema=self, rows=tuple(Row(row) for row in rows))

    def empty(self) -> "FilterTable":
        return FilterTable(schema=self, rows=())


@dataclass(frozen=True, kw_only=True)
class FilterTable:
    """Immutable ordered rows with per-field projection and filtering.

    ``where`` never mutates or re-fetches: it returns a new table over the
    matching subset of the rows already held, in their original order.
    """

    schema: TableSchema
    rows: tuple[Row, ...] = field(default=())

    def where(self, predicate: Predicate | None = None, /, **criteria: Any) -> "FilterTable":
        """Keep rows matching a predicate and/or per-field criteria."""
        for name in criteria:
            self._check_field(name)

        def keep(row: Row) -> bool:
            if predicate is not None and not predicate(row):
                return False
            return all(matches(row[name], c) for name, c in criteria.items())

        return FilterTable(schema=self.schema, rows=tuple(r for r in self.rows if keep(r)))

    def column(self, name: str) -> Sequence[Any]:
        """Values of one field across all rows, in row order."""
        self._check_field(name)
        return [row[name] for row in self.rows]

    def __getitem__(self, name: str) -> Sequence[Any]:
        return self.column(name)

    @property
    def exists(self) -> bool:
        return bool(self.rows)

    @property
    def entries(self) -> Sequence[Row]:
        return list(self.rows)

    @property
    def count(self) -> int:
        return len(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def _check_field(self, name: str) -> None:
        if name not in self.schema.fields:
            raise UnknownFieldError(
                f"Unknown field '{name}', table has: {', '.join(self.schema.fields)}"
            )
