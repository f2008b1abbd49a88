"""Fetcher for profiles published in a profile registry."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import aiohttp
from yarl import URL

from policy_audit.errors import FetchError
from policy_audit.profiles.cache import ContentCache
from policy_audit.profiles.fetchers.base import FetchResult
from policy_audit.profiles.fetchers.manifest import (
    DEFAULT_REGISTRY_URL,
    FetcherConfig,
    FetcherManifest,
)
from policy_audit.profiles.fetchers.url import UrlFetcher

log = logging.getLogger(__name__)


class RegistryConfig(FetcherConfig):
    registry_url: str = DEFAULT_REGISTRY_URL


class RegistryFetcher(UrlFetcher):
    """Looks up ``owner/name`` in the registry and downloads its source URL."""

    def __init__(
        self, cache: ContentCache, session: aiohttp.ClientSession, registry_url: URL
    ) -> None:
        super().__init__(cache, session)
        self.registry_url = registry_url

    async def source_url(self, owner: str, name: str) -> str:
        endpoint = self.registry_url / "api" / "v1" / "tools" / owner / name
        try:
            async with self.session.get(endpoint) as response:
                if response.status == 404:
                    raise FetchError(f"Profile {owner}/{name} not found in {self.registry_url}")
                if response.status != 200:
                    raise FetchError(
                        f"Registry lookup of {owner}/{name} failed: HTTP {response.status}"
                    )
                info = await response.json()
        except aiohttp.ClientError as e:
            raise FetchError(f"Registry lookup of {owner}/{name} failed: {e}") from e

        source = info.get("tool_source_url") if isinstance(info, dict) else None
        if not source:
            raise FetchError(f"Registry entry {owner}/{name} has no source URL")
        return str(source)

    async def resolve(self, locator: str, constraint: str | None = None) -> FetchResult:
        owner, _, name = locator.removeprefix("registry://").strip("/").partition("/")
        if not owner or not name or "/" in name:
            raise FetchError(f"Invalid registry locator '{locator}': expected owner/name")

        source = await self.source_url(owner, name)
        log.debug("Registry resolved %s/%s to %s", owner, name, source)
        return await super().resolve(source, constraint)

    @classmethod
    @asynccontextmanager
    async def from_config(  # type: ignore[override]
        cls, config: RegistryConfig
    ) -> AsyncGenerator["RegistryFetcher", None]:
        timeout = aiohttp.ClientTimeout(total=config.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            yield cls(ContentCache(config.cache_dir), session, URL(config.registry_url))


registry_manifest = FetcherManifest(
    config_cls=RegistryConfig,
    fetcher_factory=RegistryFetcher.from_config,
)
