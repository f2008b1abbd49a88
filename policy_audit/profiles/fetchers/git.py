"""Fetcher for profiles in git repositories."""

import asyncio
import logging
import tempfile
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from policy_audit.errors import FetchError, TargetConnectionError
from policy_audit.profiles.cache import ContentCache
from policy_audit.profiles.fetchers.base import Fetcher, FetchResult
from policy_audit.profiles.fetchers.manifest import FetcherConfig, FetcherManifest
from policy_audit.transports.process import run_process

log = logging.getLogger(__name__)


class GitConfig(FetcherConfig):
    git_executable: str = "git"


def split_locator(locator: str) -> tuple[str, str | None]:
    """Split ``url#ref`` into the repository URL and optional ref."""
    url, _, ref = locator.partition("#")
    return url, ref or None


class GitFetcher(Fetcher):
    """Checks out a repository at a ref and caches the working tree."""

    def __init__(self, cache: ContentCache, git: str, timeout: float) -> None:
        super().__init__(cache)
        self.git = git
        self.timeout = timeout

    async def resolve(self, locator: str, constraint: str | None = None) -> FetchResult:
        url, ref = split_locator(locator)
        with tempfile.TemporaryDirectory(prefix="policy-audit-git-") as scratch:
            checkout = Path(scratch) / "repo"
            try:
                async with asyncio.timeout(self.timeout):
                    await self.checkout(url, ref, checkout)
            except TimeoutError as e:
                raise FetchError(f"Timed out cloning {locator}") from e
            return self.finish(locator, checkout)

    async def checkout(self, url: str, ref: str | None, dest: Path) -> None:
        """Shallow clone at a branch or tag; fall back to a full clone for commits."""
        shallow = ["clone", "--quiet", "--depth", "1"]
        if ref:
            shallow += ["--branch", ref]
        returncode, stderr = await self.git_command(*shallow, url, str(dest))
        if returncode == 0:
            return
        if not ref:
            raise FetchError(f"Git clone of {url} failed: {stderr}")

        log.debug("Shallow clone of %s at %s failed, trying full clone", url, ref)
        returncode, stderr = await self.git_command("clone", "--quiet", url, str(dest))
        if returncode != 0:
            raise FetchError(f"Git clone of {url} failed: {stderr}")
        returncode, stderr = await self.git_command(
            "-C", str(dest), "checkout", "--quiet", ref
        )
        if returncode != 0:
            raise FetchError(f"Cannot check out '{ref}' in {url}: {stderr}")

    async def git_command(self, *args: str) -> tuple[int, str]:
        try:
            result = await run_process([self.git, *args])
        except TargetConnectionError as e:
            raise FetchError(f"Git executable not found: {self.git}") from e
        return result.exit_status, result.stderr.strip()

    @classmethod
    @asynccontextmanager
    async def from_config(cls, config: GitConfig) -> AsyncGenerator["GitFetcher", None]:
        yield cls(ContentCache(config.cache_dir), config.git_executable, config.timeout)


git_manifest = FetcherManifest(
    config_cls=GitConfig,
    fetcher_factory=GitFetcher.from_config,
)
