"""Tests for filter tables."""

import re

import pytest

from policy_audit.filter_table import FilterTable, Row, TableSchema, UnknownFieldError

SCHEMA = TableSchema("name", "port", "state")


@pytest.fixture
def table() -> FilterTable:
    return SCHEMA.table(
        [
            {"name": "sshd", "port": 22, "state": "running"},
            {"name": "nginx", "port": 80, "state": "running"},
            {"name": "postgres", "port": 5432, "state": "stopped"},
            {"name": "cron"},
        ]
    )


class TestTableSchema:
    """Tests for TableSchema."""

    def test_rejects_duplicate_fields(self) -> None:
        """Duplicate field names are a declaration error."""
        with pytest.raises(ValueError, match="Duplicate field"):
            TableSchema("a", "b", "a")

    def test_empty_table(self) -> None:
        """An empty table has no rows and does not exist."""
        empty = SCHEMA.empty()

        assert not empty.exists
        assert empty.count == 0
        assert empty.column("name") == []


class TestProjection:
    """Tests for per-field projection."""

    def test_column_in_row_order(self, table: FilterTable) -> None:
        """Projects a field across all rows, keeping row order."""
        assert table.column("name") == ["sshd", "nginx", "postgres", "cron"]
        assert table["port"] == [22, 80, 5432, None]

    def test_unknown_field_raises(self, table: FilterTable) -> None:
        """Projecting an undeclared field is an error."""
        with pytest.raises(UnknownFieldError, match="Unknown field 'pid'"):
            table.column("pid")

    def test_missing_value_reads_as_none(self, table: FilterTable) -> None:
        """A row without a declared field binds it to None."""
        assert table.rows[3]["state"] is None
        assert "state" not in table.rows[3]


class TestWhere:
    """Tests for where filtering."""

    def test_filters_by_literal(self, table: FilterTable) -> None:
        """Literal criteria compare for equality."""
        running = table.where(state="running")

        assert running.column("name") == ["sshd", "nginx"]

    def test_filters_by_pattern(self, table: FilterTable) -> None:
        """Compiled patterns search string values; None never matches."""
        assert table.where(name=re.compile("^(ss|ng)")).count == 2
        assert table.where(state=re.compile(".*")).count == 3

    def test_filters_by_callable(self, table: FilterTable) -> None:
        """Callable criteria are applied to the field value."""
        high = table.where(port=lambda p: p is not None and p > 1024)

        assert high.column("name") == ["postgres"]

    def test_filters_by_row_predicate(self, table: FilterTable) -> None:
        """A positional predicate receives the whole row."""
        result = table.where(lambda row: row["port"] is None)

        assert result.column("name") == ["cron"]

    def test_predicate_over_absent_field_does_not_raise(self, table: FilterTable) -> None:
        """Absent fields bind to None inside predicates."""
        result = table.where(lambda row: row["state"] != "running")

        assert result.column("name") == ["postgres", "cron"]

    def test_does_not_mutate_original(self, table: FilterTable) -> None:
        """Filtering returns a new table and leaves the source intact."""
        table.where(state="stopped")

        assert table.count == 4

    def test_is_idempotent(self, table: FilterTable) -> None:
        """Re-applying a satisfied predicate yields an equal table."""
        once = table.where(state="running")

        assert once.where(state="running") == once

    def test_chains(self, table: FilterTable) -> None:
        """Successive where calls narrow the rows."""
        result = table.where(state="running").where(port=80)

        assert result.column("name") == ["nginx"]

    def test_unknown_criterion_raises(self, table: FilterTable) -> None:
        """Filtering on an undeclared field is an error."""
        with pytest.raises(UnknownFieldError):
            table.where(pid=1)

    def test_no_match_does_not_exist(self, table: FilterTable) -> None:
        """A table with no matching rows does not exist."""
        assert not table.where(name="apache").exists


class TestRow:
    """Tests for Row."""

    def test_equals_mapping(self) -> None:
        """Rows compare equal to rows and mappings with the same values."""
        assert Row({"a": 1}) == Row({"a": 1})
        assert Row({"a": 1}) == {"a": 1}
        assert Row({"a": 1}) != {"a": 2}

    def test_is_read_only(self) -> None:
        """Rows cannot be modified in place."""
        row = Row({"a": 1})

        with pytest.raises(TypeError):
            row["a"] = 2  # type: ignore[index]
