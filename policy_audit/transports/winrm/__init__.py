"""WinRM transport module."""

from policy_audit.transports.winrm.config import WinRMConfig
from policy_audit.transports.winrm.connection import WinRMConnection
from policy_audit.transports.winrm.manifest import winrm_manifest

__all__ = ["WinRMConfig", "WinRMConnection", "winrm_manifest"]
