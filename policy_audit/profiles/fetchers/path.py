"""Fetcher for profiles in local directories."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from policy_audit.errors import FetchError
from policy_audit.profiles.cache import ContentCache
from policy_audit.profiles.fetchers.base import Fetcher, FetchResult
from policy_audit.profiles.fetchers.manifest import FetcherConfig, FetcherManifest


class PathFetcher(Fetcher):
    """Copies a local profile directory into the cache."""

    async def resolve(self, locator: str, constraint: str | None = None) -> FetchResult:
        path = Path(locator).expanduser()
        if not path.is_dir():
            raise FetchError(f"Profile directory not found: {locator}")
        return self.finish(locator, path)

    @classmethod
    @asynccontextmanager
    async def from_config(cls, config: FetcherConfig) -> AsyncGenerator["PathFetcher", None]:
        yield cls(ContentCache(config.cache_dir))


path_manifest = FetcherManifest(
    config_cls=FetcherConfig,
    fetcher_factory=PathFetcher.from_config,
)
