"""Tests for platform detection probes."""

from policy_audit.models.platform import UNKNOWN_PLATFORM, PlatformInfo
from policy_audit.models.target import TargetDescriptor
from policy_audit.transports.detection import parse_os_release
from policy_audit.transports.mock import MockCommand, MockConnection, MockData, MockFile

UBUNTU_OS_RELEASE = """\
NAME="Ubuntu"
VERSION_ID="22.04"
ID=ubuntu
ID_LIKE=debian
"""


def undetected(
    files: dict[str, str] | None = None, commands: dict[str, str] | None = None
) -> MockConnection:
    """Mock connection without a recorded platform, so probes run."""
    return MockConnection(
        descriptor=TargetDescriptor(scheme="mock"),
        data=MockData(
            files={p: MockFile(content=c) for p, c in (files or {}).items()},
            commands={c: MockCommand(stdout=o) for c, o in (commands or {}).items()},
        ),
    )


class TestParseOsRelease:
    """Tests for parse_os_release."""

    def test_strips_quotes_and_comments(self) -> None:
        values = parse_os_release('# comment\nID="rocky"\nVERSION_ID=\'9.3\'\nbogus\n')

        assert values == {"ID": "rocky", "VERSION_ID": "9.3"}


class TestDetectPlatform:
    """Tests for probe ordering and fallbacks."""

    async def test_os_release_wins(self) -> None:
        connection = undetected(
            files={"/etc/os-release": UBUNTU_OS_RELEASE},
            commands={"uname -m": "aarch64\n"},
        )

        platform = await connection.platform()

        assert platform == PlatformInfo(
            family="debian", name="ubuntu", release="22.04", arch="aarch64"
        )
        assert platform.families == ["debian", "linux", "unix"]

    async def test_redhat_release_descriptor(self) -> None:
        connection = undetected(
            files={"/etc/redhat-release": "CentOS Linux release 7.9.2009 (Core)\n"}
        )

        platform = await connection.platform()

        assert platform.family == "redhat"
        assert platform.name == "centos"
        assert platform.release == "7.9.2009"

    async def test_uname_fallback(self) -> None:
        connection = undetected(
            commands={"uname -s": "Darwin\n", "uname -r": "23.1.0\n", "uname -m": "arm64\n"}
        )

        platform = await connection.platform()

        assert platform.family == "darwin"
        assert platform.release == "23.1.0"
        assert platform.in_family("bsd")

    async def test_nothing_matches(self) -> None:
        """A target no probe recognizes is reported as unknown."""
        platform = await undetected().platform()

        assert platform == UNKNOWN_PLATFORM

    async def test_detects_once(self) -> None:
        connection = undetected(files={"/etc/os-release": UBUNTU_OS_RELEASE})

        await connection.platform()
        calls = list(connection.calls)
        await connection.platform()

        assert connection.calls == calls
