from stackyard.clients.base import (
    CommandError,
    ContainerTasks,
    HelmAPI,
    KubernetesAPI,
    ToolNotInstalledError,
)
from stackyard.clients.docker import DockerTasks, container_fqdn
from stackyard.clients.helm import HelmCLI, ReleaseNotFoundError
from stackyard.clients.kubernetes import KubernetesClient, KubernetesClientError

__all__ = [
    "CommandError",
    "ToolNotInstalledError",
    "ContainerTasks",
    "KubernetesAPI",
    "HelmAPI",
    "DockerTasks",
    "container_fqdn",
    "HelmCLI",
    "ReleaseNotFoundError",
    "KubernetesClient",
    "KubernetesClientError",
]
