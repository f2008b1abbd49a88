"""Loading of transports from entry points."""

from typing import Any

from policy_audit.errors import TransportNotFoundError
from policy_audit.plugins import load_plugin
from policy_audit.transports.manifest import TransportManifest

ENTRY_POINT_GROUP = "policy_audit.transports"


def load_transport_manifest(scheme: str) -> TransportManifest[Any]:
    """Load a transport manifest by target scheme.

    Raises:
        TransportNotFoundError: If no transport handles the scheme

    """
    manifest: TransportManifest[Any] = load_plugin(
        ENTRY_POINT_GROUP, scheme, TransportNotFoundError
    )
    return manifest
