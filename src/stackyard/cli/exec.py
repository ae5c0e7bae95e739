"""
CLI command attaching an interactive shell to a running resource.

Containers get the shell directly. For clusters a disposable tools container
is started on the cluster's network, preconfigured to reach the cluster, and
removed again when the shell exits.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from stackyard.cli.ux import info, is_interactive, select
from stackyard.clients.base import CommandError, ContainerTasks
from stackyard.clients.docker import container_fqdn
from stackyard.config import (
    DOCKER_KUBECONFIG_FILENAME,
    Settings,
    get_settings,
    kube_config_path,
    state_path,
)
from stackyard.core.errors import (
    ConfigurationError,
    ExitCode,
    ExternalCallFailedError,
    ResourceNotFoundError,
    StateNotFoundError,
    main_with_error_handling,
)
from stackyard.providers import build_context, ephemeral_container
from stackyard.providers.nomad_cluster import NOMAD_API_PORT
from stackyard.resources import Container, ResourceGraph, ResourceType, Status, Volume, load_state
from stackyard.resources.models import Resource

logger = structlog.get_logger()

DEFAULT_SHELL = ["sh"]
EXEC_TYPES = (ResourceType.CONTAINER, ResourceType.K8S_CLUSTER, ResourceType.NOMAD_CLUSTER)


def exec_targets(graph: ResourceGraph) -> list[str]:
    """Identifiers of created resources a shell can be attached to."""
    return [
        r.id
        for rtype in EXEC_TYPES
        for r in graph.find_by_type(rtype)
        if r.status == Status.CREATED
    ]


def tools_environment(
    resource: Resource, settings: Settings
) -> tuple[dict[str, str], list[Volume]]:
    """Environment and mounts that point a tools container at a cluster."""
    if resource.type == ResourceType.K8S_CLUSTER:
        config_dir, _ = kube_config_path(resource.name, settings)
        return (
            {"KUBECONFIG": f"/config/{DOCKER_KUBECONFIG_FILENAME}"},
            [Volume(source=str(config_dir), destination="/config", type="bind")],
        )
    server = container_fqdn(f"server.{resource.name}", resource.network_name)
    return {"NOMAD_ADDR": f"http://{server}:{NOMAD_API_PORT}"}, []


def _shell_in_container(tasks: ContainerTasks, resource: Container, command: Sequence[str]) -> int:
    ids = tasks.find_container_ids(resource.name, resource.network_name)
    if not ids:
        raise ResourceNotFoundError(
            f"no running container found for {resource.id}", {"resource": resource.id}
        )
    return tasks.create_shell(ids[0], command)


def _shell_in_tools(
    tasks: ContainerTasks, resource: Resource, settings: Settings, command: Sequence[str]
) -> int:
    environment, volumes = tools_environment(resource, settings)
    with ephemeral_container(
        tasks,
        settings.tools_image,
        network=resource.network_name,
        volumes=volumes,
        environment=environment,
    ) as container_id:
        return tasks.create_shell(container_id, command)


@main_with_error_handling()
def exec_command(target: str | None = None, command: Sequence[str] | None = None) -> int:
    """
    Run ``command`` (a shell by default) inside a resource.

    Returns:
        The exit status of the command
    """
    settings = get_settings()
    try:
        graph = load_state(state_path(settings))
    except StateNotFoundError:
        info("No resources are running, start a stack with 'stackyard run <blueprint>'")
        return ExitCode.SUCCESS

    if target is None:
        choices = exec_targets(graph)
        if not choices:
            info("No containers or clusters are running")
            return ExitCode.SUCCESS
        if not is_interactive():
            raise ConfigurationError("a target resource is required outside a terminal")
        target = select("Which resource would you like to use?", choices)
        if target is None:
            return ExitCode.SUCCESS

    resource = graph.find_by_identifier(target)
    if resource.type not in EXEC_TYPES:
        raise ConfigurationError(
            f"can not exec into {resource.id}, expected a container or cluster",
            {"resource": resource.id},
        )

    tasks = build_context(settings).container_tasks
    command = list(command or DEFAULT_SHELL)
    logger.info("exec_started", resource=resource.id, command=command)
    try:
        if isinstance(resource, Container):
            return _shell_in_container(tasks, resource, command)
        return _shell_in_tools(tasks, resource, settings, command)
    except CommandError as e:
        raise ExternalCallFailedError(resource.id, "exec", e) from e
