"""Tests for the content-addressed profile cache."""

from pathlib import Path

from policy_audit.profiles.cache import ContentCache, tree_hash
from policy_audit.testing.profiles import write_profile


class TestTreeHash:
    """Tests for tree_hash."""

    def test_stable_and_content_sensitive(self, tmp_path: Path) -> None:
        first = write_profile(tmp_path / "a", "p")
        second = write_profile(tmp_path / "b", "p")

        assert tree_hash(first) == tree_hash(second)

        (second / "controls" / "extra.yaml").write_text("[]\n")
        assert tree_hash(first) != tree_hash(second)

    def test_ignores_vcs_metadata(self, tmp_path: Path) -> None:
        profile_dir = write_profile(tmp_path, "p")
        before = tree_hash(profile_dir)

        (profile_dir / ".git").mkdir()
        (profile_dir / ".git" / "HEAD").write_text("ref: refs/heads/main\n")

        assert tree_hash(profile_dir) == before


class TestContentCache:
    """Tests for ContentCache."""

    def test_store(self, tmp_path: Path) -> None:
        cache = ContentCache(tmp_path / "cache")
        source = write_profile(tmp_path, "p")

        content_hash, stored = cache.store(source)

        assert stored == cache.path_for(content_hash)
        assert cache.contains(content_hash)
        assert (stored / "profile.yaml").read_text() == (source / "profile.yaml").read_text()
        assert tree_hash(stored) == content_hash

    def test_store_twice_is_noop(self, tmp_path: Path) -> None:
        cache = ContentCache(tmp_path / "cache")
        source = write_profile(tmp_path, "p")

        first = cache.store(source)
        second = cache.store(source)

        assert first == second
        assert [p.name for p in (tmp_path / "cache").iterdir()] == [first[0]]

    def test_missing(self, tmp_path: Path) -> None:
        assert not ContentCache(tmp_path).contains("0" * 64)
