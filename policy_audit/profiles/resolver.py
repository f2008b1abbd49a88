"""Dependency resolution and locking for profiles."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from policy_audit.errors import (
    CyclicDependencyError,
    UnresolvedDependencyError,
    UnsatisfiableVersionError,
)
from policy_audit.profiles.cache import ContentCache
from policy_audit.profiles.fetchers.loading import FetcherSet
from policy_audit.profiles.loader import load_profile
from policy_audit.profiles.lockfile import LockedDependency, Lockfile
from policy_audit.profiles.models import Dependency, Profile
from policy_audit.profiles.versions import satisfies

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ResolvedDependency:
    """A dependency bound to concrete content."""

    name: str
    version: str
    source: str
    content_hash: str
    profile: Profile
    requires: tuple[str, ...]
    included: bool

    def lock_entry(self) -> LockedDependency:
        return LockedDependency(
            version=self.version,
            source=self.source,
            content_hash=self.content_hash,
            requires=self.requires,
        )


@dataclass(frozen=True, kw_only=True)
class Resolution:
    """Root profile plus its dependencies in depth-first discovery order."""

    root: Profile
    dependencies: Sequence[ResolvedDependency]
    lockfile: Lockfile
    from_lock: bool

    @property
    def profiles(self) -> Sequence[Profile]:
        """Profiles whose controls run: the root, then included dependencies."""
        return [self.root, *(d.profile for d in self.dependencies if d.included)]


class LockDrift(Exception):  # noqa: N818
    """The lock no longer describes the declared dependencies."""


@dataclass(kw_only=True)
class _Node:
    name: str
    version: str
    source: str
    content_hash: str
    profile: Profile
    base_dir: Path
    constraints: list[tuple[str, str]] = field(default_factory=list)


def included_names(root: Profile, nodes: dict[str, _Node]) -> set[str]:
    """Names reachable from the root through ``include_controls`` edges only."""
    included: set[str] = set()
    pending = [root]
    while pending:
        profile = pending.pop()
        for dep in profile.metadata.depends:
            if dep.include_controls and dep.name not in included and dep.name in nodes:
                included.add(dep.name)
                pending.append(nodes[dep.name].profile)
    return included


@dataclass(kw_only=True)
class DependencyResolver:
    """Builds the dependency graph of a root profile and pins it.

    Traversal is depth first in declaration order, so the same inputs always
    produce the same lock entries.
    """

    fetchers: FetcherSet
    cache: ContentCache

    async def resolve(
        self, root: Profile, *, lockfile: Lockfile | None = None, refresh: bool = False
    ) -> Resolution:
        """Resolve the root's dependencies, reusing a lock when possible.

        Raises:
            CyclicDependencyError: If a dependency (transitively) requires itself
            UnsatisfiableVersionError: If constraints on one name cannot all hold
            UnresolvedDependencyError: If locked content cannot be restored
            FetchError: If a source cannot be fetched

        """
        if lockfile is not None and not refresh:
            try:
                nodes = await self._bind_locked(root, lockfile)
            except LockDrift as e:
                log.warning("Lock file is out of date (%s), resolving again", e)
            else:
                return self._finish(root, nodes, from_lock=True)

        nodes = {}
        for dep in root.metadata.depends:
            await self._visit(dep, root.name, root.path, (root.name,), nodes)
        return self._finish(root, nodes, from_lock=False)

    async def _visit(
        self,
        dep: Dependency,
        declared_by: str,
        base_dir: Path,
        path: tuple[str, ...],
        nodes: dict[str, _Node],
    ) -> None:
        if dep.name in path:
            cycle = (*path[path.index(dep.name) :], dep.name)
            raise CyclicDependencyError(cycle)

        node = nodes.get(dep.name)
        if node is None:
            locator = dep.locator(base_dir)
            fetcher = await self.fetchers.get(dep.kind)
            result = await fetcher.resolve(locator, dep.version)
            profile = await load_profile(result.content_path)
            if profile.name != dep.name:
                log.warning(
                    "Dependency '%s' resolved to a profile named '%s'", dep.name, profile.name
                )
            node = _Node(
                name=dep.name,
                version=result.resolved_version,
                source=dep.source(base_dir),
                content_hash=result.content_hash,
                profile=profile,
                base_dir=Path(locator) if dep.kind == "path" else result.content_path,
            )
            nodes[dep.name] = node
            self._constrain(node, dep, declared_by)
            for child in profile.metadata.depends:
                await self._visit(child, dep.name, node.base_dir, (*path, dep.name), nodes)
        else:
            self._constrain(node, dep, declared_by)

    @staticmethod
    def _constrain(node: _Node, dep: Dependency, declared_by: str) -> None:
        if dep.version is not None:
            node.constraints.append((dep.version, declared_by))
        if not all(satisfies(node.version, c) for c, _ in node.constraints):
            raise UnsatisfiableVersionError(node.name, node.version, tuple(node.constraints))

    async def _bind_locked(self, root: Profile, lockfile: Lockfile) -> dict[str, _Node]:
        """Bind declarations to locked entries, re-fetching only missing content."""
        nodes: dict[str, _Node] = {}

        async def bind(dep: Dependency, declared_by: str, base_dir: Path) -> None:
            if dep.name in nodes:
                self._constrain(nodes[dep.name], dep, declared_by)
                return
            entry = lockfile.depends.get(dep.name)
            if entry is None:
                raise LockDrift(f"'{dep.name}' is not locked")
            if declared_by == root.name and entry.source != dep.source(base_dir):
                raise LockDrift(f"source of '{dep.name}' changed")

            content_path = await self._restore(dep.name, entry)
            profile = await load_profile(content_path)
            declared = tuple(d.name for d in profile.metadata.depends)
            if declared != tuple(entry.requires):
                raise LockDrift(f"dependencies of '{dep.name}' changed")

            node = _Node(
                name=dep.name,
                version=entry.version,
                source=entry.source,
                content_hash=entry.content_hash,
                profile=profile,
                base_dir=content_path,
            )
            nodes[dep.name] = node
            self._constrain(node, dep, declared_by)
            for child in profile.metadata.depends:
                await bind(child, dep.name, content_path)

        for dep in root.metadata.depends:
            await bind(dep, root.name, root.path)

        if stale := set(lockfile.depends) - set(nodes):
            raise LockDrift(f"no longer required: {', '.join(sorted(stale))}")
        return nodes

    async def _restore(self, name: str, entry: LockedDependency) -> Path:
        if self.cache.contains(entry.content_hash):
            return self.cache.path_for(entry.content_hash)

        log.info("Locked content of '%s' missing from cache, fetching %s", name, entry.source)
        kind, _, locator = entry.source.partition(":")
        fetcher = await self.fetchers.get(kind)
        result = await fetcher.resolve(locator, f"=={entry.version}")
        if result.content_hash != entry.content_hash:
            raise UnresolvedDependencyError(
                f"Content of '{name}' from {entry.source} no longer matches the lock "
                f"(expected {entry.content_hash[:12]}, got {result.content_hash[:12]})"
            )
        return result.content_path

    def _finish(self, root: Profile, nodes: dict[str, _Node], *, from_lock: bool) -> Resolution:
        included = included_names(root, nodes)
        dependencies = [
            ResolvedDependency(
                name=node.name,
                version=node.version,
                source=node.source,
                content_hash=node.content_hash,
                profile=node.profile,
                requires=tuple(d.name for d in node.profile.metadata.depends),
                included=node.name in included,
            )
            for node in nodes.values()
        ]
        lockfile = Lockfile(depends={d.name: d.lock_entry() for d in dependencies})
        root.locks.clear()
        root.locks.update(lockfile.depends)
        log.info(
            "Resolved %d dependencies of %s%s",
            len(dependencies),
            root.name,
            " from lock file" if from_lock else "",
        )
        return Resolution(
            root=root, dependencies=dependencies, lockfile=lockfile, from_lock=from_lock
        )
