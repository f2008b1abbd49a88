"""Mock transport manifest."""

from policy_audit.transports.manifest import TransportManifest
from policy_audit.transports.mock.config import MockConfig
from policy_audit.transports.mock.connection import MockConnection

mock_manifest = TransportManifest(
    config_cls=MockConfig,
    connection_factory=MockConnection.from_config,
)
