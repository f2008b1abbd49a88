"""Fetcher for profile archives served over HTTP."""

import io
import logging
import tarfile
import tempfile
import zipfile
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path, PurePosixPath

import aiohttp
from yarl import URL

from policy_audit.errors import FetchError
from policy_audit.profiles.cache import ContentCache
from policy_audit.profiles.fetchers.base import Fetcher, FetchResult
from policy_audit.profiles.fetchers.manifest import FetcherConfig, FetcherManifest

log = logging.getLogger(__name__)


def extract_archive(payload: bytes, dest: Path) -> Path:
    """Unpack a zip or tar archive and return the profile root inside it.

    Archives wrapping everything in one top-level directory (the usual
    GitHub tarball layout) are unwrapped.
    """
    try:
        if zipfile.is_zipfile(io.BytesIO(payload)):
            with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                for name in archive.namelist():
                    if PurePosixPath(name).is_absolute() or ".." in PurePosixPath(name).parts:
                        raise FetchError(f"Unsafe path in archive: {name}")
                archive.extractall(dest)
        else:
            with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as archive:
                archive.extractall(dest, filter="data")
    except (tarfile.TarError, zipfile.BadZipFile) as e:
        raise FetchError(f"Unreadable profile archive: {e}") from e

    entries = [p for p in dest.iterdir() if not p.name.startswith(".")]
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return dest


class UrlFetcher(Fetcher):
    """Downloads a tar.gz or zip profile archive."""

    def __init__(self, cache: ContentCache, session: aiohttp.ClientSession) -> None:
        super().__init__(cache)
        self.session = session

    async def download(self, url: URL) -> bytes:
        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    raise FetchError(f"Download of {url} failed: HTTP {response.status}")
                return await response.read()
        except aiohttp.ClientError as e:
            raise FetchError(f"Download of {url} failed: {e}") from e
        except TimeoutError as e:
            raise FetchError(f"Download of {url} timed out") from e

    async def resolve(self, locator: str, constraint: str | None = None) -> FetchResult:
        url = URL(locator)
        if url.scheme not in ("http", "https"):
            raise FetchError(f"Unsupported URL scheme for profile archive: {locator}")

        payload = await self.download(url)
        log.debug("Downloaded %d bytes from %s", len(payload), url)
        with tempfile.TemporaryDirectory(prefix="policy-audit-url-") as scratch:
            root = extract_archive(payload, Path(scratch))
            return self.finish(locator, root)

    @classmethod
    @asynccontextmanager
    async def from_config(cls, config: FetcherConfig) -> AsyncGenerator["UrlFetcher", None]:
        timeout = aiohttp.ClientTimeout(total=config.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            yield cls(ContentCache(config.cache_dir), session)


url_manifest = FetcherManifest(
    config_cls=FetcherConfig,
    fetcher_factory=UrlFetcher.from_config,
)
