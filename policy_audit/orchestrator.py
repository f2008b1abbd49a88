"""Audit orchestrator coordinating resolution, connection and execution."""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from policy_audit.engine.runner import ProfileRunner
from policy_audit.engine.selection import ControlFilter
from policy_audit.engine.statistics import compute_statistics
from policy_audit.models.config import RunConfig
from policy_audit.models.platform import PlatformInfo
from policy_audit.models.result import ProfileResult, RunResult
from policy_audit.profiles.cache import ContentCache
from policy_audit.profiles.fetchers.loading import FetcherSet
from policy_audit.profiles.loader import load_profile
from policy_audit.profiles.lockfile import read_lockfile, write_lockfile
from policy_audit.profiles.models import Profile
from policy_audit.profiles.resolver import DependencyResolver, Resolution
from policy_audit.resources.registry import ResourceRegistry, default_registry
from policy_audit.transports.pool import ConnectionPool

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class AuditOrchestrator:
    """Runs profiles against one target, strictly one after another."""

    config: RunConfig
    registry: ResourceRegistry = field(default_factory=default_registry)

    async def resolve(self, profile_dir: Path, fetchers: FetcherSet) -> Resolution:
        """Load a root profile, resolve its dependencies and persist the lock."""
        root = await load_profile(profile_dir)
        lockfile = read_lockfile(profile_dir)
        resolver = DependencyResolver(
            fetchers=fetchers, cache=ContentCache(self.config.cache_dir)
        )
        resolution = await resolver.resolve(
            root, lockfile=lockfile, refresh=self.config.refresh_lock
        )

        if self.config.create_lockfile and resolution.lockfile != lockfile:
            if resolution.dependencies or lockfile is not None:
                write_lockfile(profile_dir, resolution.lockfile)
        return resolution

    async def run(self, profile_dirs: Sequence[Path]) -> RunResult:
        """Resolve every profile, then execute them in the order given.

        Raises:
            AuditError: For fatal configuration, connection or resolution
                failures; per-test faults are reported in the results instead

        """
        started = time.monotonic()
        descriptor = self.config.descriptor()

        async with FetcherSet(settings=self.config.fetcher_settings()) as fetchers:
            profiles: list[Profile] = []
            for profile_dir in profile_dirs:
                resolution = await self.resolve(profile_dir, fetchers)
                profiles.extend(resolution.profiles)

        async with ConnectionPool(command_timeout=self.config.command_timeout) as pool:
            connection = await pool.connect(descriptor)
            platform = await connection.platform()
            runner = ProfileRunner(
                registry=self.registry,
                connection=connection,
                control_filter=ControlFilter.parse(self.config.controls),
                input_overrides=self.config.inputs,
            )
            results: list[ProfileResult] = []
            for profile in profiles:
                log.info("Executing profile %s %s", profile.name, profile.version)
                results.append(await runner.run(profile))

        statistics = compute_statistics(results, duration=time.monotonic() - started)
        return RunResult(
            target=descriptor.locator,
            platform=platform_dict(platform),
            profiles=results,
            statistics=statistics,
        )

    async def detect(self) -> PlatformInfo:
        """Connect to the target and report its platform."""
        async with ConnectionPool(command_timeout=self.config.command_timeout) as pool:
            connection = await pool.connect(self.config.descriptor())
            return await connection.platform()


def platform_dict(platform: PlatformInfo) -> dict[str, str | None]:
    return {
        "family": platform.family,
        "name": platform.name,
        "release": platform.release,
        "arch": platform.arch,
    }
