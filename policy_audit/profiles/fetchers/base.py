"""Fetcher contract and shared behavior."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from policy_audit.errors import FetchError, ProfileError
from policy_audit.profiles.cache import ContentCache
from policy_audit.profiles.loader import read_metadata

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class FetchResult:
    """Where a fetched profile now lives, which version it is and its hash."""

    content_path: Path
    resolved_version: str
    content_hash: str


class Fetcher(ABC):
    """Turns a source locator into profile content in the local cache.

    Implementations fetch into a scratch location and hand it to ``finish``,
    which stores the tree in the content cache. Transient I/O problems are
    raised as ``FetchError`` and never retried here.
    """

    def __init__(self, cache: ContentCache) -> None:
        self.cache = cache

    @abstractmethod
    async def resolve(self, locator: str, constraint: str | None = None) -> FetchResult:
        """Fetch the profile a locator points to.

        Raises:
            FetchError: If the source is unreachable or holds no valid profile

        """

    def finish(self, locator: str, content_dir: Path) -> FetchResult:
        """Store fetched content and read its version."""
        try:
            metadata = read_metadata(content_dir)
        except (FileNotFoundError, ProfileError) as e:
            raise FetchError(f"No valid profile at {locator}: {e}") from e

        content_hash, cached = self.cache.store(content_dir)
        log.info("Fetched %s %s from %s", metadata.name, metadata.version, locator)
        return FetchResult(
            content_path=cached,
            resolved_version=metadata.version,
            content_hash=content_hash,
        )
