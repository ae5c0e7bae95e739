"""
Provider contract shared by every resource type.

A provider drives the external system behind one resource: ``create`` brings
it up (failing fast with :class:`AlreadyExistsError` when an external object
already uses the identifier), ``destroy`` tears it down and tolerates the
object being gone, ``lookup`` reports what is running under the resource's
name.
"""

from __future__ import annotations

import random
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, TypeVar

import structlog

from stackyard.clients.base import CommandError, ContainerTasks, HelmAPI, KubernetesAPI
from stackyard.clients.kubernetes import KubernetesClientError
from stackyard.config.settings import Settings, get_settings
from stackyard.core.errors import (
    DependencyUnresolvedError,
    ExternalCallFailedError,
    HealthCheckTimeoutError,
)
from stackyard.health.checker import HealthChecker, HealthCheckTimeout, HealthCheckTransportError
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Resource, ResourceType, Status

T = TypeVar("T")

# Failures of the external systems that providers wrap into ExternalCallFailedError
EXTERNAL_ERRORS = (CommandError, KubernetesClientError, HealthCheckTransportError, OSError)


@dataclass
class ProviderContext:
    """Collaborators shared by all providers of one engine."""

    container_tasks: ContainerTasks
    helm: HelmAPI
    kubernetes_factory: Callable[[], KubernetesAPI]
    health_checker: HealthChecker
    settings: Settings = field(default_factory=get_settings)
    # Serializes helm invocations across the whole engine
    helm_lock: threading.Lock = field(default_factory=threading.Lock)
    rng: random.Random = field(default_factory=random.Random)


def build_context(settings: Settings | None = None) -> ProviderContext:
    """Build a context wired to the docker and helm CLIs and the Kubernetes API."""
    from stackyard.clients.docker import DockerTasks
    from stackyard.clients.helm import HelmCLI
    from stackyard.clients.kubernetes import KubernetesClient

    settings = settings or get_settings()
    checker = HealthChecker(interval=settings.health_check_interval)
    return ProviderContext(
        container_tasks=DockerTasks(settings.docker_binary, timeout=settings.command_timeout),
        helm=HelmCLI(settings.helm_binary, timeout=settings.command_timeout),
        kubernetes_factory=lambda: KubernetesClient(checker),
        health_checker=checker,
        settings=settings,
    )


class Provider(ABC):
    """Create, destroy and look up the external objects behind a resource."""

    resource_type: ClassVar[ResourceType]

    def __init__(self, resource: Resource, graph: ResourceGraph, context: ProviderContext) -> None:
        self.resource = resource
        self.graph = graph
        self.context = context
        self.log = structlog.get_logger().bind(resource=resource.id)

    @abstractmethod
    def create(self) -> None:
        """Create the external objects for the resource."""

    @abstractmethod
    def destroy(self) -> None:
        """Remove the external objects for the resource, if any."""

    @abstractmethod
    def lookup(self) -> list[str]:
        """Return identifiers of external objects running under this resource."""

    @property
    def tasks(self) -> ContainerTasks:
        return self.context.container_tasks

    def check_dependencies(self) -> None:
        """Ensure every dependency reference resolves to a created resource."""
        for dependency in self.graph.dependencies(self.resource):
            if dependency.status != Status.CREATED:
                raise DependencyUnresolvedError(
                    dependency.id,
                    f"{self.resource.id} depends on {dependency.id} "
                    f"which is {dependency.status.value}",
                    self.resource.id,
                )

    def external(self, action: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call an external system, wrapping its failures with the resource identifier."""
        try:
            return func(*args, **kwargs)
        except HealthCheckTimeout:
            raise
        except EXTERNAL_ERRORS as e:
            self.log.error("external_call_failed", action=action, error=str(e))
            raise ExternalCallFailedError(self.resource.id, action, e) from e

    def wait(
        self,
        description: str,
        func: Callable[..., None],
        *args: Any,
        failure: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Run a readiness check, turning a timeout into :class:`HealthCheckTimeoutError`."""
        self.log.info("waiting_for_resource", check=description)
        try:
            self.external(description, func, *args, **kwargs)
        except HealthCheckTimeout as e:
            failure = failure or f"{self.resource.id} did not become ready"
            raise HealthCheckTimeoutError(self.resource.id, f"{failure}: {e}", e) from e
