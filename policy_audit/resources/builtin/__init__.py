"""Resources shipped with policy-audit."""

from policy_audit.resources.builtin.command import CommandResource
from policy_audit.resources.builtin.docker import (
    CONTAINER_SCHEMA,
    DockerContainerResource,
    DockerContainersResource,
)
from policy_audit.resources.builtin.file import FileResource
from policy_audit.resources.builtin.iam_policy import IamPolicyResource
from policy_audit.resources.builtin.kernel_module import KernelModuleResource
from policy_audit.resources.builtin.operating_system import OSResource
from policy_audit.resources.builtin.processes import PROCESS_SCHEMA, ProcessesResource
from policy_audit.resources.builtin.security_policy import SecurityPolicyResource
from policy_audit.resources.builtin.yaml_config import YamlResource
from policy_audit.resources.registry import ResourceRegistry, supported_on

__all__ = [
    "CommandResource",
    "DockerContainerResource",
    "DockerContainersResource",
    "FileResource",
    "IamPolicyResource",
    "KernelModuleResource",
    "OSResource",
    "ProcessesResource",
    "SecurityPolicyResource",
    "YamlResource",
    "register_builtin_resources",
]


def register_builtin_resources(registry: ResourceRegistry) -> None:
    """Register every built-in resource under its profile-facing name."""
    registry.register("command", CommandResource.create)
    registry.register("file", FileResource.create)
    registry.register("os", OSResource.create)
    registry.register(
        "kernel_module", KernelModuleResource.create, supports=supported_on("linux")
    )
    registry.register(
        "processes",
        ProcessesResource.create,
        supports=supported_on("unix"),
        schema=PROCESS_SCHEMA,
    )
    registry.register(
        "docker_containers",
        DockerContainersResource.create,
        supports=supported_on("unix"),
        schema=CONTAINER_SCHEMA,
    )
    registry.register(
        "docker_container", DockerContainerResource.create, supports=supported_on("unix")
    )
    registry.register("yaml", YamlResource.create)
    registry.register("iam_policy", IamPolicyResource.create)
    registry.register(
        "security_policy", SecurityPolicyResource.create, supports=supported_on("windows")
    )
