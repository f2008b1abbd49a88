"""Configuration for the local transport."""

from policy_audit.transports.manifest import TransportConfig


class LocalConfig(TransportConfig):
    """Configuration for running against the machine the audit runs on."""
