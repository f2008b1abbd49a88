"""Prioritized platform detection probes."""

import logging
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, TypeAlias

from policy_audit.models.platform import DISTRO_FAMILIES, PlatformInfo

if TYPE_CHECKING:
    from policy_audit.transports.base import Connection

log = logging.getLogger(__name__)

Probe: TypeAlias = Callable[["Connection"], Awaitable[PlatformInfo | None]]

OS_RELEASE_PATHS = ("/etc/os-release", "/usr/lib/os-release")

# Dedicated release descriptors, checked when os-release is absent.
RELEASE_DESCRIPTORS: Sequence[tuple[str, str]] = (
    ("/etc/redhat-release", "redhat"),
    ("/etc/alpine-release", "alpine"),
    ("/etc/SuSE-release", "suse"),
    ("/etc/arch-release", "arch"),
    ("/etc/gentoo-release", "gentoo"),
    ("/etc/debian_version", "debian"),
)

UNAME_FAMILIES: Mapping[str, str] = {
    "linux": "linux",
    "darwin": "darwin",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "netbsd": "netbsd",
    "sunos": "solaris",
    "aix": "aix",
    "hp-ux": "hpux",
}

RELEASE_NUMBER = re.compile(r"(\d+(?:\.\d+)*)")

WINDOWS_PROBE_SCRIPT = (
    "$o = Get-CimInstance Win32_OperatingSystem; "
    "Write-Output $o.Caption; Write-Output $o.Version; "
    "Write-Output $o.OSArchitecture"
)


def parse_os_release(content: str) -> Mapping[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    values: dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("\"'")
    return values


def family_for(distro: str, like: Sequence[str] = ()) -> str:
    for candidate in (distro, *like):
        if candidate in DISTRO_FAMILIES:
            return DISTRO_FAMILIES[candidate]
    return "linux"


async def probe_os_release(connection: "Connection") -> PlatformInfo | None:
    for path in OS_RELEASE_PATHS:
        content = await connection.file(path).read()
        if not content:
            continue
        values = parse_os_release(content)
        if "ID" not in values:
            continue
        distro = values["ID"].lower()
        like = values.get("ID_LIKE", "").lower().split()
        return PlatformInfo(
            family=family_for(distro, like),
            name=distro,
            release=values.get("VERSION_ID"),
        )
    return None


async def probe_release_descriptors(connection: "Connection") -> PlatformInfo | None:
    for path, family in RELEASE_DESCRIPTORS:
        content = await connection.file(path).read()
        if content is None:
            continue
        content = content.strip()
        name = family
        if family == "redhat" and content:
            name = content.split()[0].lower()
            if name == "red":
                name = "redhat"
        match = RELEASE_NUMBER.search(content)
        return PlatformInfo(
            family=family_for(name) if family == "redhat" else family,
            name=name,
            release=match.group(1) if match else None,
        )
    return None


async def probe_uname(connection: "Connection") -> PlatformInfo | None:
    result = await connection.run_command("uname -s")
    if not result.ok or not result.stdout.strip():
        return None
    name = result.stdout.strip().lower()
    release = await connection.run_command("uname -r")
    return PlatformInfo(
        family=UNAME_FAMILIES.get(name, "unix"),
        name=name,
        release=(release.stdout.strip() or None) if release.ok else None,
    )


async def probe_windows(connection: "Connection") -> PlatformInfo | None:
    result = await connection.run_command(WINDOWS_PROBE_SCRIPT)
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if not result.ok or len(lines) < 2:
        return None
    caption = re.sub(r"[^a-z0-9]+", "_", lines[0].lower()).strip("_")
    return PlatformInfo(
        family="windows",
        name=caption.removeprefix("microsoft_") or "windows",
        release=lines[1],
        arch=lines[2] if len(lines) > 2 else None,
    )


POSIX_PROBES: Sequence[Probe] = (
    probe_os_release,
    probe_release_descriptors,
    probe_uname,
)
WINDOWS_PROBES: Sequence[Probe] = (probe_windows,)


async def detect_platform(
    connection: "Connection",
    probes: Sequence[Probe],
    implied: PlatformInfo | None = None,
) -> PlatformInfo | None:
    """Run probes in priority order; fall back to the backend-implied platform."""
    for probe in probes:
        info = await probe(connection)
        if info is None:
            log.debug("Probe %s found nothing", probe.__name__)
            continue
        if info.arch is None and not info.is_windows:
            arch = await connection.run_command("uname -m")
            if arch.ok and arch.stdout.strip():
                info = info.model_copy(update={"arch": arch.stdout.strip()})
        return info
    return implied
