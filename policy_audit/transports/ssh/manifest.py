"""SSH transport manifest."""

from policy_audit.transports.manifest import TransportManifest
from policy_audit.transports.ssh.config import SSHConfig
from policy_audit.transports.ssh.connection import SSHConnection

ssh_manifest = TransportManifest(
    config_cls=SSHConfig,
    connection_factory=SSHConnection.from_config,
)
