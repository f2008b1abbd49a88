"""Loading of fetchers from entry points."""

import logging
from collections.abc import Mapping
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Self

from policy_audit.errors import FetcherNotFoundError
from policy_audit.plugins import load_plugin
from policy_audit.profiles.fetchers.base import Fetcher
from policy_audit.profiles.fetchers.manifest import FetcherManifest

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "policy_audit.fetchers"


def load_fetcher_manifest(kind: str) -> FetcherManifest[Any]:
    """Load a fetcher manifest by source kind (path, git, url, registry).

    Raises:
        FetcherNotFoundError: If no fetcher handles the kind

    """
    manifest: FetcherManifest[Any] = load_plugin(
        ENTRY_POINT_GROUP, kind, FetcherNotFoundError
    )
    return manifest


@dataclass(kw_only=True)
class FetcherSet:
    """Fetchers opened on first use and closed together."""

    settings: Mapping[str, Any]
    _stack: AsyncExitStack = field(default_factory=AsyncExitStack, init=False)
    _fetchers: dict[str, Fetcher] = field(default_factory=dict, init=False)

    async def get(self, kind: str) -> Fetcher:
        if (fetcher := self._fetchers.get(kind)) is not None:
            return fetcher

        manifest = load_fetcher_manifest(kind)
        config = manifest.config_cls(**self.settings)
        log.debug("Opening %s fetcher", kind)
        fetcher = await self._stack.enter_async_context(manifest.fetcher_factory(config))
        self._fetchers[kind] = fetcher
        return fetcher

    async def close(self) -> None:
        self._fetchers.clear()
        await self._stack.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
