"""Content-addressed store of fetched profiles."""

import hashlib
import logging
import shutil
import tempfile
from pathlib import Path

log = logging.getLogger(__name__)

IGNORED_NAMES = frozenset({".git", ".hg", ".svn", "__pycache__"})


def iter_files(root: Path) -> list[Path]:
    """Regular files below ``root``, sorted by relative path."""
    return sorted(
        (
            path
            for path in root.rglob("*")
            if path.is_file()
            and not IGNORED_NAMES.intersection(path.relative_to(root).parts)
        ),
        key=lambda path: path.relative_to(root).as_posix(),
    )


def tree_hash(root: Path) -> str:
    """SHA-256 over each file's relative path and bytes, in sorted order."""
    digest = hashlib.sha256()
    for path in iter_files(root):
        digest.update(path.relative_to(root).as_posix().encode())
        digest.update(b"\0")
        digest.update(path.read_bytes())
        digest.update(b"\0")
    return digest.hexdigest()


class ContentCache:
    """Directory of profile trees stored under their content hash."""

    def __init__(self, root: Path) -> None:
        self.root = root.expanduser()

    def path_for(self, content_hash: str) -> Path:
        return self.root / content_hash

    def contains(self, content_hash: str) -> bool:
        return (self.path_for(content_hash) / "profile.yaml").is_file()

    def store(self, source: Path) -> tuple[str, Path]:
        """Copy a profile tree into the cache and return its hash and location.

        Storing the same content twice is a no-op.
        """
        content_hash = tree_hash(source)
        target = self.path_for(content_hash)
        if self.contains(content_hash):
            log.debug("Cache hit for %s (%s)", source, content_hash[:12])
            return content_hash, target

        self.root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(dir=self.root, prefix=".staging-"))
        try:
            for path in iter_files(source):
                dest = staging / path.relative_to(source)
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(path, dest)
            if target.exists():
                shutil.rmtree(target)
            staging.rename(target)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        log.debug("Cached %s as %s", source, content_hash[:12])
        return content_hash, target
