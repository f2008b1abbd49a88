"""Tests for control selection."""

from policy_audit.engine.selection import ControlFilter


class TestControlFilter:
    """Tests for ControlFilter."""

    def test_empty_selects_everything(self) -> None:
        control_filter = ControlFilter.parse([])

        assert control_filter.is_empty
        assert control_filter("anything")

    def test_literal_ids(self) -> None:
        control_filter = ControlFilter.parse(["ssh-01", "ssh-02"])

        assert control_filter("ssh-01")
        assert not control_filter("ssh-011")

    def test_regex(self) -> None:
        control_filter = ControlFilter.parse(["/^db_/"])

        assert control_filter("db_1")
        assert not control_filter("web_1")

    def test_mixed(self) -> None:
        control_filter = ControlFilter.parse(["/^db_/", "web_1", ""])

        assert control_filter("web_1")
        assert control_filter("db_9")
        assert not control_filter("web_2")
