"""Target descriptors parsed from locator strings."""

from collections.abc import Mapping
from typing import Any

from pydantic import Field, SecretStr
from yarl import URL

from policy_audit.errors import ConfigurationError
from policy_audit.models.base import Model

TRUTHY = frozenset({"1", "true", "yes", "on"})


class TargetDescriptor(Model):
    """Immutable description of where and how to reach a target."""

    scheme: str = Field(..., description="Transport key, e.g. local, ssh, winrm")
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: SecretStr | None = Field(default=None, repr=False)
    key_files: tuple[str, ...] = ()
    options: Mapping[str, str] = Field(default_factory=dict)

    @classmethod
    def parse(cls, locator: str | None, **overrides: Any) -> "TargetDescriptor":
        """Parse ``scheme://[user[:password]@]host[:port][?opt=value]``.

        Explicit keyword overrides win over values taken from the locator,
        so credentials can be supplied out of band.
        """
        if not locator:
            locator = "local://"
        if "://" not in locator:
            raise ConfigurationError(
                f"Invalid target '{locator}': expected scheme://[user@]host[:port]"
            )

        try:
            url = URL(locator)
        except ValueError as e:
            raise ConfigurationError(f"Invalid target '{locator}': {e}") from e

        options = dict(url.query)
        key_files = tuple(k for k in url.query.getall("key_file", []) if k)
        options.pop("key_file", None)

        fields: dict[str, Any] = {
            "scheme": url.scheme,
            "host": url.raw_host or None,
            "port": url.explicit_port,
            "user": url.user,
            "password": url.password,
            "key_files": key_files,
            "options": options,
        }
        fields.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**fields)

    @property
    def key(self) -> tuple[Any, ...]:
        """Identity used to decide whether two descriptors share a connection."""
        secret = self.password.get_secret_value() if self.password else None
        return (
            self.scheme,
            self.host,
            self.port,
            self.user,
            secret,
            self.key_files,
            tuple(sorted(self.options.items())),
        )

    @property
    def locator(self) -> str:
        """Locator string safe for logs and reports (no password)."""
        user = f"{self.user}@" if self.user else ""
        port = f":{self.port}" if self.port else ""
        return f"{self.scheme}://{user}{self.host or ''}{port}"

    def option(self, name: str, default: str | None = None) -> str | None:
        """Return a backend option."""
        return self.options.get(name, default)

    def flag(self, name: str) -> bool:
        """Return a backend option interpreted as a boolean."""
        return self.options.get(name, "").lower() in TRUTHY
