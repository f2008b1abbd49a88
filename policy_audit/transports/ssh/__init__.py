"""SSH transport module."""

from policy_audit.transports.ssh.config import SSHConfig
from policy_audit.transports.ssh.connection import SSHConnection
from policy_audit.transports.ssh.manifest import ssh_manifest

__all__ = ["SSHConfig", "SSHConnection", "ssh_manifest"]
