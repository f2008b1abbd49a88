"""Tests for the audit orchestrator."""

from pathlib import Path
from typing import Any

import pytest
import yaml

from policy_audit.errors import ProfileError, TransportNotFoundError
from policy_audit.models.config import RunConfig
from policy_audit.orchestrator import AuditOrchestrator, platform_dict
from policy_audit.profiles.lockfile import LOCKFILE_NAME, read_lockfile
from policy_audit.testing.profiles import os_control, write_profile

TARGET_DATA = {
    "platform": {"family": "debian", "name": "ubuntu", "release": "22.04", "arch": "x86_64"},
    "commands": {"sshd -T": {"stdout": "permitrootlogin no\n"}},
}


def command_control(control_id: str, pattern: str) -> dict[str, Any]:
    return {
        "id": control_id,
        "tests": [
            {
                "resource": "command",
                "args": ["sshd -T"],
                "expect": [{"its": "stdout", "should": "match", "expected": pattern}],
            }
        ],
    }


@pytest.fixture
def target(tmp_path: Path) -> str:
    """Locator of a mock target described by a fixture file."""
    fixture = tmp_path / "target.yaml"
    fixture.write_text(yaml.safe_dump(TARGET_DATA))
    return f"mock://box?fixture={fixture}"


@pytest.fixture
def profiles(tmp_path: Path) -> Path:
    """baseline -> hardening"""
    root = tmp_path / "profiles"
    write_profile(
        root,
        "baseline",
        depends=[{"name": "hardening", "path": "../hardening"}],
        controls=[os_control("base-1"), command_control("ssh-1", "permitrootlogin no")],
    )
    write_profile(
        root,
        "hardening",
        version="2.1.0",
        controls=[command_control("ssh-2", "passwordauthentication no")],
    )
    return root


def orchestrator(target: str, tmp_path: Path, **settings: Any) -> AuditOrchestrator:
    config = RunConfig(target=target, cache_dir=tmp_path / "cache", **settings)
    return AuditOrchestrator(config=config)


class TestRun:
    """Tests for AuditOrchestrator.run."""

    async def test_runs_root_then_dependencies(
        self, target: str, profiles: Path, tmp_path: Path
    ) -> None:
        result = await orchestrator(target, tmp_path).run([profiles / "baseline"])

        assert [p.name for p in result.profiles] == ["baseline", "hardening"]
        assert result.target == target
        assert result.platform == {
            "family": "debian",
            "name": "ubuntu",
            "release": "22.04",
            "arch": "x86_64",
        }
        baseline, hardening = result.profiles
        assert [c.status for c in baseline.controls] == ["passed", "passed"]
        assert [c.status for c in hardening.controls] == ["failed"]
        assert result.statistics.controls.passed == 2
        assert result.statistics.controls.failed == 1
        assert result.statistics.tests.total == 3
        assert result.statistics.duration >= 0

    async def test_writes_lockfile(self, target: str, profiles: Path, tmp_path: Path) -> None:
        await orchestrator(target, tmp_path).run([profiles / "baseline"])

        lockfile = read_lockfile(profiles / "baseline")
        assert lockfile is not None
        assert list(lockfile.depends) == ["hardening"]
        assert lockfile.depends["hardening"].version == "2.1.0"

    async def test_lockfile_disabled(self, target: str, profiles: Path, tmp_path: Path) -> None:
        await orchestrator(target, tmp_path, create_lockfile=False).run([profiles / "baseline"])

        assert not (profiles / "baseline" / LOCKFILE_NAME).exists()

    async def test_no_lockfile_without_dependencies(
        self, target: str, profiles: Path, tmp_path: Path
    ) -> None:
        await orchestrator(target, tmp_path).run([profiles / "hardening"])

        assert not (profiles / "hardening" / LOCKFILE_NAME).exists()

    async def test_lockfile_unchanged_on_rerun(
        self, target: str, profiles: Path, tmp_path: Path
    ) -> None:
        await orchestrator(target, tmp_path).run([profiles / "baseline"])
        path = profiles / "baseline" / LOCKFILE_NAME
        first = path.stat().st_mtime_ns

        await orchestrator(target, tmp_path).run([profiles / "baseline"])

        assert path.stat().st_mtime_ns == first

    async def test_control_selection_and_inputs(
        self, target: str, profiles: Path, tmp_path: Path
    ) -> None:
        result = await orchestrator(target, tmp_path, controls=["/^ssh/"]).run(
            [profiles / "baseline"]
        )

        assert [c.id for p in result.profiles for c in p.controls] == ["ssh-1", "ssh-2"]

    async def test_profiles_in_given_order(
        self, target: str, profiles: Path, tmp_path: Path
    ) -> None:
        result = await orchestrator(target, tmp_path).run(
            [profiles / "hardening", profiles / "baseline"]
        )

        assert [p.name for p in result.profiles] == ["hardening", "baseline", "hardening"]

    async def test_invalid_profile_is_fatal(self, target: str, tmp_path: Path) -> None:
        broken = tmp_path / "broken"
        broken.mkdir()
        (broken / "profile.yaml").write_text("name: [unterminated")

        with pytest.raises(ProfileError, match="Invalid YAML"):
            await orchestrator(target, tmp_path).run([broken])

    async def test_unknown_transport(self, profiles: Path, tmp_path: Path) -> None:
        with pytest.raises(TransportNotFoundError):
            await orchestrator("telnet://box", tmp_path).run([profiles / "hardening"])


class TestDetect:
    """Tests for AuditOrchestrator.detect."""

    async def test_detect(self, target: str, tmp_path: Path) -> None:
        platform = await orchestrator(target, tmp_path).detect()

        assert platform_dict(platform)["name"] == "ubuntu"
        assert platform.family == "debian"
