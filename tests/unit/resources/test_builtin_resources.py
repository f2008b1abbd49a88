"""Tests for the built-in resources over mock connections."""

import json
from typing import Any

import pytest

from policy_audit.models.platform import WINDOWS_PLATFORM
from policy_audit.resources.builtin.docker import PS_COMMAND as DOCKER_PS, split_image
from policy_audit.resources.builtin.processes import PS_COMMAND, parse_ps_line
from policy_audit.resources.builtin.security_policy import (
    CLEANUP_COMMAND,
    EXPORT_COMMAND,
    READ_COMMAND,
)
from policy_audit.resources.instance import ResourceInstance
from policy_audit.resources.registry import default_registry
from policy_audit.testing.factories import PlatformInfoFactory, mock_connection
from policy_audit.transports.mock import MockConnection


async def instantiate(
    connection: MockConnection, name: str, *args: Any, **params: Any
) -> ResourceInstance:
    return await default_registry().instantiate(name, connection, *args, **params)


class TestCommand:
    """Tests for the command resource."""

    async def test_output(self) -> None:
        connection = mock_connection(
            commands={"sysctl -n net.ipv4.ip_forward": {"stdout": "0\n", "exit_status": 0}}
        )
        instance = await instantiate(connection, "command", "sysctl -n net.ipv4.ip_forward")

        assert await instance.get("stdout") == "0\n"
        assert await instance.get("exit_status") == 0
        assert instance.describe() == "Command: `sysctl -n net.ipv4.ip_forward`"

    async def test_runs_once(self) -> None:
        connection = mock_connection(commands={"date": "now"})
        instance = await instantiate(connection, "command", "date")

        await instance.get("stdout")
        await instance.get("stderr")

        assert connection.calls.count("date") == 1

    async def test_exists_checks_executable(self) -> None:
        connection = mock_connection(commands={"command -v sysctl": "/sbin/sysctl"})

        present = await instantiate(connection, "command", "sysctl -a")
        missing = await instantiate(connection, "command", "nft list ruleset")

        assert await present.exists()
        assert not await missing.exists()


class TestFile:
    """Tests for the file resource."""

    async def test_metadata(self) -> None:
        connection = mock_connection(
            files={"/etc/shadow": {"mode": 0o640, "owner": "root", "group": "shadow"}}
        )
        instance = await instantiate(connection, "file", "/etc/shadow")

        assert await instance.exists()
        assert await instance.get("mode") == "0640"
        assert await instance.get("owner") == "root"
        assert await instance.get("file") is True
        assert await instance.get("directory") is False
        assert instance.describe() == "File /etc/shadow"

    async def test_content(self) -> None:
        connection = mock_connection(files={"/etc/issue": "Ubuntu\n"})
        instance = await instantiate(connection, "file", "/etc/issue")

        assert await instance.get("content") == "Ubuntu\n"
        assert await instance.get("size") == 7

    async def test_missing(self) -> None:
        instance = await instantiate(mock_connection(), "file", "/nope")

        assert instance.is_active
        assert not await instance.exists()
        assert await instance.get("mode") is None
        assert await instance.get("file") is False


class TestOperatingSystem:
    """Tests for the os resource."""

    async def test_facts_and_families(self) -> None:
        instance = await instantiate(mock_connection(), "os")

        assert await instance.get("name") == "ubuntu"
        assert await instance.get("release") == "22.04"
        assert await instance.get("families") == ["debian", "linux", "unix"]
        assert await instance.get("linux") is True
        assert await instance.get("windows") is False


class TestKernelModule:
    """Tests for the kernel_module resource."""

    LSMOD = "Module                  Size  Used by\nusb_storage            77824  0\nuas 1 0\n"

    async def test_loaded(self) -> None:
        connection = mock_connection(commands={"lsmod": self.LSMOD})

        loaded = await instantiate(connection, "kernel_module", "usb_storage")
        prefix = await instantiate(connection, "kernel_module", "usb")

        assert await loaded.get("loaded") is True
        assert await prefix.get("loaded") is False

    async def test_disabled_and_blacklisted(self) -> None:
        config = "install cramfs /bin/true\nblacklist cramfs\ninstall udf /bin/false\n"
        connection = mock_connection(commands={"modprobe --showconfig": config})

        cramfs = await instantiate(connection, "kernel_module", "cramfs")
        udf = await instantiate(connection, "kernel_module", "udf")

        assert await cramfs.get("disabled") is True
        assert await cramfs.get("disabled_via_bin_true") is True
        assert await cramfs.get("blacklisted") is True
        assert await udf.get("disabled_via_bin_false") is True
        assert await udf.get("blacklisted") is False

    async def test_redhat_uses_sbin(self) -> None:
        connection = mock_connection(
            platform=PlatformInfoFactory.build(family="redhat", name="rocky"),
            commands={"/sbin/lsmod": self.LSMOD},
        )
        instance = await instantiate(connection, "kernel_module", "uas")

        assert await instance.get("loaded") is True

    async def test_version(self) -> None:
        connection = mock_connection(commands={"modinfo -F version usb_storage": "1.2\n"})
        instance = await instantiate(connection, "kernel_module", "usb_storage")

        assert await instance.get("version") == "1.2"


class TestProcesses:
    """Tests for the processes table resource."""

    PS = (
        "    1 root     Ss   /sbin/init splash\n"
        "  812 mysql    Sl   /usr/sbin/mysqld --daemonize\n"
        "  900 www-data S    nginx: worker process\n"
    )

    def test_parse_ps_line(self) -> None:
        assert parse_ps_line("  7 root S") == {"pid": 7, "user": "root", "stat": "S", "command": ""}
        assert parse_ps_line("header") is None

    async def test_table_and_grep(self) -> None:
        connection = mock_connection(commands={PS_COMMAND: self.PS})

        everything = await instantiate(connection, "processes")
        mysqld = await instantiate(connection, "processes", "mysqld")

        assert await everything.get("count") == 3
        assert await mysqld.get("user") == ["mysql"]
        assert mysqld.describe() == "Processes mysqld"

    async def test_table_filtering(self) -> None:
        connection = mock_connection(commands={PS_COMMAND: self.PS})
        instance = await instantiate(connection, "processes")

        table = await instance.table()

        assert table is not None
        assert table.where(user="root").column("pid") == [1]

    async def test_skipped_on_windows(self) -> None:
        instance = await instantiate(mock_connection(platform=WINDOWS_PLATFORM), "processes")

        assert instance.status == "skipped"
        table = await instance.table()
        assert table is not None and table.count == 0


class TestDocker:
    """Tests for the docker resources."""

    CONTAINERS = "\n".join(
        json.dumps(c)
        for c in (
            {
                "ID": "abc123def",
                "Image": "nginx:1.25",
                "Names": "web",
                "Status": "Up 2 hours",
                "Labels": "tier=front,env=prod",
                "Command": '"nginx -g"',
            },
            {
                "ID": "fff000",
                "Image": "registry:5000/tools/job",
                "Names": "job",
                "Status": "Exited (0) 1 day ago",
                "Labels": "",
            },
        )
    )

    def connection(self) -> MockConnection:
        return mock_connection(
            commands={"command -v docker": "/usr/bin/docker", DOCKER_PS: self.CONTAINERS}
        )

    def test_split_image(self) -> None:
        assert split_image("nginx:1.25") == ("nginx", "1.25")
        assert split_image("registry:5000/tools/job") == ("registry:5000/tools/job", "")

    async def test_containers_table(self) -> None:
        instance = await instantiate(self.connection(), "docker_containers")

        assert await instance.get("names") == ["web", "job"]
        assert await instance.get("running_ids") == ["abc123def"]
        assert await instance.get("labels") == [["tier=front", "env=prod"], []]

    async def test_single_container(self) -> None:
        connection = self.connection()

        web = await instantiate(connection, "docker_container", name="web")
        job = await instantiate(connection, "docker_container", id="fff")

        assert await web.get("running") is True
        assert await web.get("repo") == "nginx"
        assert await web.get("tag") == "1.25"
        assert await web.get("command") == "nginx -g"
        assert await job.get("running") is False
        assert await job.get("tag") is None

    async def test_missing_container(self) -> None:
        instance = await instantiate(self.connection(), "docker_container", name="db")

        assert not await instance.exists()
        assert await instance.get("running") is None

    async def test_skipped_without_docker(self) -> None:
        instance = await instantiate(mock_connection(), "docker_containers")

        assert instance.status == "skipped"
        assert instance.reason == "The `docker` binary is not available on the target"

    async def test_requires_name_or_id(self) -> None:
        instance = await instantiate(self.connection(), "docker_container")

        assert instance.status == "failed"


class TestYaml:
    """Tests for the yaml resource."""

    async def test_dotted_lookup(self) -> None:
        content = "server:\n  ports: [80, 443]\n  tls: {enabled: true}\n"
        connection = mock_connection(files={"/etc/app.yaml": content})
        instance = await instantiate(connection, "yaml", "/etc/app.yaml")

        assert await instance.get("server.ports.1") == 443
        assert await instance.get("server.tls.enabled") is True
        assert await instance.get("server.missing.key") is None

    async def test_from_command(self) -> None:
        connection = mock_connection(commands={"kubectl get cm -o yaml": "kind: ConfigMap\n"})
        instance = await instantiate(connection, "yaml", command="kubectl get cm -o yaml")

        assert await instance.get("kind") == "ConfigMap"

    async def test_missing_file_skips(self) -> None:
        instance = await instantiate(mock_connection(), "yaml", "/etc/none.yaml")

        assert instance.status == "skipped"
        assert instance.reason == "Can't find file `/etc/none.yaml`"

    async def test_unparsable_document_fails(self) -> None:
        instance = await instantiate(mock_connection(), "yaml", content="a: [unclosed\n")

        assert instance.status == "failed"
        assert instance.reason is not None
        assert instance.reason.startswith("Unable to parse content")

    async def test_scalar_document(self) -> None:
        instance = await instantiate(mock_connection(), "yaml", content="42\n")

        assert await instance.get("value") == 42


class TestSecurityPolicy:
    """Tests for the security_policy resource."""

    EXPORT = (
        "[Unicode]\nUnicode=yes\n[System Access]\n"
        "MinimumPasswordAge = 1\nPasswordComplexity = 1\n"
        'NewAdministratorName = "Admin"\n'
    )

    async def test_reads_export_once(self) -> None:
        connection = mock_connection(
            platform=WINDOWS_PLATFORM,
            commands={EXPORT_COMMAND: "", READ_COMMAND: self.EXPORT, CLEANUP_COMMAND: ""},
        )
        instance = await instantiate(connection, "security_policy")

        assert await instance.get("MinimumPasswordAge") == 1
        assert await instance.get("NewAdministratorName") == '"Admin"'
        assert await instance.get("Unknown") is None
        assert connection.calls == [EXPORT_COMMAND, READ_COMMAND, CLEANUP_COMMAND]

    @pytest.mark.parametrize("family", ["debian", "redhat"])
    async def test_skipped_off_windows(self, family: str) -> None:
        connection = mock_connection(platform=PlatformInfoFactory.build(family=family))

        instance = await instantiate(connection, "security_policy")

        assert instance.status == "skipped"
