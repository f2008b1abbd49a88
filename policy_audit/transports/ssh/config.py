"""Configuration for the SSH transport."""

from typing import Any, Self

from pydantic import Field, SecretStr, model_validator

from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.manifest import TransportConfig


class SSHConfig(TransportConfig):
    """Configuration for the SSH transport.

    Validated before any socket is opened: the port must be positive, the user
    non-empty, and at least one of password or key files must be present.
    """

    host: str = Field(..., min_length=1)
    port: int = Field(default=22, gt=0)
    user: str = Field(default="root", min_length=1)
    password: SecretStr | None = None
    key_files: tuple[str, ...] = ()
    connect_timeout: int = Field(default=15, gt=0)
    sudo: bool = False

    @model_validator(mode="after")
    def _require_auth_method(self) -> Self:
        if not self.key_files and self.password is None:
            raise ValueError(
                "You must configure at least one authentication method: "
                "password or key"
            )
        return self

    @classmethod
    def from_target(cls, descriptor: TargetDescriptor, **settings: Any) -> Self:
        fields: dict[str, Any] = {
            "target": descriptor,
            "host": descriptor.host or "",
            "password": descriptor.password,
            "key_files": descriptor.key_files,
            "sudo": descriptor.flag("sudo"),
        }
        if descriptor.port is not None:
            fields["port"] = descriptor.port
        if descriptor.user is not None:
            fields["user"] = descriptor.user
        if (timeout := descriptor.option("connect_timeout")) is not None:
            fields["connect_timeout"] = timeout
        return cls(**fields, **settings)
