"""Local transport module."""

from policy_audit.transports.local.config import LocalConfig
from policy_audit.transports.local.connection import LocalConnection
from policy_audit.transports.local.manifest import local_manifest

__all__ = ["LocalConfig", "LocalConnection", "local_manifest"]
