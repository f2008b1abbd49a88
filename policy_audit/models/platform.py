"""Platform information detected on a target."""

from collections.abc import Mapping, Sequence

from policy_audit.models.base import Model

# Parent of each platform family; walking it yields the full family chain.
FAMILY_PARENTS: Mapping[str, str] = {
    "debian": "linux",
    "redhat": "linux",
    "fedora": "linux",
    "suse": "linux",
    "arch": "linux",
    "alpine": "linux",
    "gentoo": "linux",
    "amazon": "linux",
    "linux": "unix",
    "darwin": "bsd",
    "freebsd": "bsd",
    "openbsd": "bsd",
    "netbsd": "bsd",
    "bsd": "unix",
    "solaris": "unix",
    "aix": "unix",
    "hpux": "unix",
}

# Distribution ids from os-release mapped onto a family.
DISTRO_FAMILIES: Mapping[str, str] = {
    "ubuntu": "debian",
    "debian": "debian",
    "linuxmint": "debian",
    "raspbian": "debian",
    "rhel": "redhat",
    "centos": "redhat",
    "rocky": "redhat",
    "almalinux": "redhat",
    "ol": "redhat",
    "scientific": "redhat",
    "fedora": "fedora",
    "amzn": "amazon",
    "sles": "suse",
    "opensuse": "suse",
    "opensuse-leap": "suse",
    "opensuse-tumbleweed": "suse",
    "arch": "arch",
    "manjaro": "arch",
    "alpine": "alpine",
    "gentoo": "gentoo",
}


class PlatformInfo(Model):
    """Operating system facts about a target."""

    family: str
    name: str
    release: str | None = None
    arch: str | None = None

    @property
    def families(self) -> Sequence[str]:
        """Family chain from most to least specific, e.g. debian, linux, unix."""
        chain = [self.family]
        while chain[-1] in FAMILY_PARENTS:
            chain.append(FAMILY_PARENTS[chain[-1]])
        return chain

    def in_family(self, family: str) -> bool:
        """Check whether the platform belongs to a family at any level."""
        return family == self.name or family in self.families

    @property
    def is_linux(self) -> bool:
        return self.in_family("linux")

    @property
    def is_unix(self) -> bool:
        return self.in_family("unix")

    @property
    def is_windows(self) -> bool:
        return self.family == "windows"

    def __str__(self) -> str:
        release = f" {self.release}" if self.release else ""
        return f"{self.name}{release}"


UNKNOWN_PLATFORM = PlatformInfo(family="unknown", name="unknown")
WINDOWS_PLATFORM = PlatformInfo(family="windows", name="windows")
