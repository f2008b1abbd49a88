"""Mock transport module."""

from policy_audit.transports.mock.config import MockConfig
from policy_audit.transports.mock.connection import MockConnection
from policy_audit.transports.mock.manifest import mock_manifest
from policy_audit.transports.mock.models import MockCommand, MockData, MockFile

__all__ = [
    "MockCommand",
    "MockConfig",
    "MockConnection",
    "MockData",
    "MockFile",
    "mock_manifest",
]
