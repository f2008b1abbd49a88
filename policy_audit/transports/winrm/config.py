"""Configuration for the WinRM transport."""

import logging
from typing import Any, Self

from pydantic import Field, SecretStr, field_validator

from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.manifest import TransportConfig

log = logging.getLogger(__name__)

DEFAULT_USER = "Administrator"


class WinRMConfig(TransportConfig):
    """Configuration for the WinRM transport (basic auth only)."""

    host: str = Field(..., min_length=1)
    port: int = Field(..., gt=0)
    user: str = Field(default=DEFAULT_USER, min_length=1)
    password: SecretStr
    ssl: bool = False
    self_signed: bool = False
    operation_timeout: int = Field(default=60, gt=0)

    @field_validator("password")
    @classmethod
    def _password_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("You must configure a WinRM password")
        return value

    @property
    def endpoint(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}/wsman"

    @classmethod
    def from_target(cls, descriptor: TargetDescriptor, **settings: Any) -> Self:
        ssl = descriptor.flag("ssl")
        user = descriptor.user
        if not user:
            log.warning("Using default '%s' as WinRM user", DEFAULT_USER)
            user = DEFAULT_USER
        fields: dict[str, Any] = {
            "target": descriptor,
            "host": descriptor.host or "",
            "port": descriptor.port or (5986 if ssl else 5985),
            "user": user,
            "password": descriptor.password or "",
            "ssl": ssl,
            "self_signed": descriptor.flag("self_signed"),
        }
        if (timeout := descriptor.option("operation_timeout")) is not None:
            fields["operation_timeout"] = timeout
        return cls(**fields, **settings)
