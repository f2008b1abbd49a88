"""Local transport manifest."""

from policy_audit.transports.local.config import LocalConfig
from policy_audit.transports.local.connection import LocalConnection
from policy_audit.transports.manifest import TransportManifest

local_manifest = TransportManifest(
    config_cls=LocalConfig,
    connection_factory=LocalConnection.from_config,
)
