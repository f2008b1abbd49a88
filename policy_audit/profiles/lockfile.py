"""Reading and writing ``profile.lock``."""

import fcntl
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field, ValidationError

from policy_audit.errors import ProfileError
from policy_audit.models.base import Model

log = logging.getLogger(__name__)

LOCKFILE_NAME = "profile.lock"
LOCKFILE_VERSION = 1


class LockedDependency(Model):
    """Pinned resolution of one dependency, keyed by name in the lock file."""

    version: str
    source: str = Field(..., description="Canonical kind:locator source string")
    content_hash: str = Field(..., min_length=64, max_length=64)
    requires: tuple[str, ...] = ()


class Lockfile(Model):
    """The persisted dependency lock of a root profile."""

    lockfile_version: Literal[1] = LOCKFILE_VERSION
    depends: Mapping[str, LockedDependency] = Field(default_factory=dict)

    def to_document(self) -> dict[str, object]:
        return {
            "lockfile_version": self.lockfile_version,
            "depends": {
                name: {
                    "version": entry.version,
                    "source": entry.source,
                    "content_hash": entry.content_hash,
                    "requires": list(entry.requires),
                }
                for name, entry in sorted(self.depends.items())
            },
        }


def lockfile_path(profile_dir: Path) -> Path:
    return profile_dir / LOCKFILE_NAME


def read_lockfile(profile_dir: Path) -> Lockfile | None:
    """Read the lock file beside a profile, None if there is none.

    Raises:
        ProfileError: If the lock file is unreadable or malformed

    """
    path = lockfile_path(profile_dir)
    if not path.is_file():
        return None

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid YAML in {path}: {e}") from e

    try:
        return Lockfile.model_validate(data or {})
    except ValidationError as e:
        raise ProfileError(f"Invalid lock file {path}: {e}") from e


def write_lockfile(profile_dir: Path, lockfile: Lockfile) -> Path:
    """Atomically replace the lock file while holding an exclusive lock.

    The content goes to a temporary file in the same directory first, so a
    reader never sees a partial document.
    """
    path = lockfile_path(profile_dir)
    guard = path.with_name(f".{path.name}.lck")
    content = yaml.safe_dump(lockfile.to_document(), sort_keys=False)

    with guard.open("a") as guard_file:
        fcntl.flock(guard_file, fcntl.LOCK_EX)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=profile_dir, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "w") as tmp:
                    tmp.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        finally:
            fcntl.flock(guard_file, fcntl.LOCK_UN)

    log.info("Wrote %s (%d dependencies)", path, len(lockfile.depends))
    return path
