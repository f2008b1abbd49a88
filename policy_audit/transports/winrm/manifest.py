"""WinRM transport manifest."""

from policy_audit.transports.manifest import TransportManifest
from policy_audit.transports.winrm.config import WinRMConfig
from policy_audit.transports.winrm.connection import WinRMConnection

winrm_manifest = TransportManifest(
    config_cls=WinRMConfig,
    connection_factory=WinRMConnection.from_config,
)
