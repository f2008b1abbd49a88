"""Fetcher manifest definition for the plugin system."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from policy_audit.profiles.fetchers.base import Fetcher

DEFAULT_REGISTRY_URL = "https://supermarket.chef.io"


class FetcherConfig(BaseModel):
    """Settings every fetcher receives; subclasses pick out what they need."""

    model_config = ConfigDict(frozen=True)

    cache_dir: Path
    timeout: float = 300.0


ConfigT = TypeVar("ConfigT", bound=FetcherConfig)


@dataclass(frozen=True, kw_only=True)
class FetcherManifest(Generic[ConfigT]):
    """Manifest describing a fetcher plugin, keyed by source kind."""

    config_cls: type[ConfigT]
    fetcher_factory: Callable[[ConfigT], AbstractAsyncContextManager[Fetcher]]
