"""Container exec transport module."""

from policy_audit.transports.docker.config import DockerConfig
from policy_audit.transports.docker.connection import DockerConnection
from policy_audit.transports.docker.manifest import docker_manifest

__all__ = ["DockerConfig", "DockerConnection", "docker_manifest"]
