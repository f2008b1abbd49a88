"""Container exec transport manifest."""

from policy_audit.transports.docker.config import DockerConfig
from policy_audit.transports.docker.connection import DockerConnection
from policy_audit.transports.manifest import TransportManifest

docker_manifest = TransportManifest(
    config_cls=DockerConfig,
    connection_factory=DockerConnection.from_config,
)
