"""Exception taxonomy for audit runs."""


class AuditError(Exception):
    """Base class for errors that abort an audit run."""


class TargetConnectionError(AuditError, ConnectionError):
    """Raised when a target is unreachable, rejects auth or times out."""


class ConfigurationError(AuditError, ValueError):
    """Raised when target or backend parameters are invalid."""


class TransportNotFoundError(ConfigurationError):
    """Raised when no transport is registered for a target scheme."""


class FetcherNotFoundError(ConfigurationError):
    """Raised when no fetcher handles a dependency source locator."""


class FetchError(AuditError):
    """Raised when a dependency source is unreachable or invalid."""


class ProfileError(AuditError, ValueError):
    """Raised when a profile document cannot be parsed or validated."""


class ResolutionError(AuditError):
    """Base class for dependency graph failures."""


class UnresolvedDependencyError(ResolutionError):
    """Raised when a locked dependency cannot be bound."""


class CyclicDependencyError(ResolutionError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: tuple[str, ...]) -> None:
        self.cycle = cycle
        super().__init__(f"Cyclic dependency: {' -> '.join(cycle)}")


class UnsatisfiableVersionError(ResolutionError):
    """Raised when constraints on one dependency cannot all hold."""

    def __init__(
        self, name: str, version: str, constraints: tuple[tuple[str, str], ...]
    ) -> None:
        self.name = name
        self.version = version
        self.constraints = constraints
        listed = ", ".join(f"'{c}' from {source}" for c, source in constraints)
        super().__init__(
            f"Dependency '{name}' resolved to {version} which does not satisfy "
            f"all constraints: {listed}"
        )


class ResourceRegistrationError(AuditError):
    """Raised when a resource name is registered twice."""


class ResourceSkipped(Exception):  # noqa: N818
    """Raised inside a resource constructor to mark the instance skipped."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
