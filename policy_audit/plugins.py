"""Loading of plugins from entry points."""

from importlib.metadata import entry_points
from typing import Any


def load_plugin(group: str, key: str, error_cls: type[Exception]) -> Any:
    """Load the object registered under ``key`` in an entry point group.

    Args:
        group: Entry point group (e.g. "policy_audit.transports")
        key: The plugin key as registered in pyproject.toml (e.g. "ssh")
        error_cls: Exception raised when no plugin matches

    Returns:
        The loaded object

    """
    entries = entry_points(group=group)

    for entry in entries:
        if entry.name == key:
            return entry.load()

    available = sorted(e.name for e in entries)
    raise error_cls(f"Plugin '{key}' not found in {group}. Available: {available}")


def load_all_plugins(group: str) -> dict[str, Any]:
    """Load every object registered in an entry point group, keyed by name."""
    return {entry.name: entry.load() for entry in entry_points(group=group)}
