"""Replay data served by the mock transport."""

from collections.abc import Mapping

from pydantic import Field

from policy_audit.models.base import Model
from policy_audit.models.platform import PlatformInfo
from policy_audit.transports.models import FileType


class MockCommand(Model):
    """Recorded outcome of one command line."""

    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0


class MockFile(Model):
    """Recorded state of one path."""

    type: FileType = "file"
    content: str | None = None
    mode: int | None = None
    owner: str | None = None
    group: str | None = None
    size: int | None = None
    mtime: int | None = None


class MockData(Model):
    """Everything a mock target knows about itself."""

    platform: PlatformInfo | None = None
    commands: Mapping[str, MockCommand] = Field(default_factory=dict)
    files: Mapping[str, MockFile] = Field(default_factory=dict)
