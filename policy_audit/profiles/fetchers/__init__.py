"""Fetchers resolving dependency sources into cached profile content."""

from policy_audit.profiles.fetchers.base import Fetcher, FetchResult
from policy_audit.profiles.fetchers.git import GitFetcher, git_manifest
from policy_audit.profiles.fetchers.loading import FetcherSet, load_fetcher_manifest
from policy_audit.profiles.fetchers.manifest import FetcherConfig, FetcherManifest
from policy_audit.profiles.fetchers.path import PathFetcher, path_manifest
from policy_audit.profiles.fetchers.registry import RegistryFetcher, registry_manifest
from policy_audit.profiles.fetchers.url import UrlFetcher, url_manifest

__all__ = [
    "FetchResult",
    "Fetcher",
    "FetcherConfig",
    "FetcherManifest",
    "FetcherSet",
    "GitFetcher",
    "PathFetcher",
    "RegistryFetcher",
    "UrlFetcher",
    "git_manifest",
    "load_fetcher_manifest",
    "path_manifest",
    "registry_manifest",
    "url_manifest",
]
