"""Run configuration."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr

from policy_audit.models.base import Model
from policy_audit.models.target import TargetDescriptor
from policy_audit.profiles.fetchers.manifest import DEFAULT_REGISTRY_URL
from policy_audit.transports.base import DEFAULT_COMMAND_TIMEOUT

DEFAULT_CACHE_DIR = Path("~/.cache/policy-audit")


class RunConfig(Model):
    """Knobs for one audit run."""

    target: str = Field(default="local://", description="Target locator")
    user: str | None = None
    password: SecretStr | None = Field(default=None, repr=False)
    key_files: Sequence[str] = Field(default_factory=tuple)
    controls: Sequence[str] = Field(
        default_factory=tuple, description="Control ids or /regex/ selectors"
    )
    inputs: Mapping[str, Any] = Field(default_factory=dict)
    create_lockfile: bool = True
    refresh_lock: bool = False
    cache_dir: Path = DEFAULT_CACHE_DIR
    registry_url: str = DEFAULT_REGISTRY_URL
    command_timeout: float = Field(default=DEFAULT_COMMAND_TIMEOUT, gt=0)

    def descriptor(self) -> TargetDescriptor:
        """Target descriptor with out-of-band credentials applied."""
        return TargetDescriptor.parse(
            self.target,
            user=self.user,
            password=self.password,
            key_files=tuple(self.key_files) or None,
        )

    def fetcher_settings(self) -> Mapping[str, Any]:
        return {
            "cache_dir": self.cache_dir.expanduser(),
            "registry_url": self.registry_url,
        }
