"""
Container provider and ephemeral tool containers.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import ClassVar

import structlog

from stackyard.clients.base import ContainerTasks
from stackyard.core.errors import AlreadyExistsError
from stackyard.providers.base import Provider
from stackyard.resources.models import (
    Container,
    Image,
    NetworkAttachment,
    ResourceType,
    Volume,
)

logger = structlog.get_logger()


class ContainerProvider(Provider):
    """A single long-running container."""

    resource_type: ClassVar[ResourceType] = ResourceType.CONTAINER
    resource: Container

    def create(self) -> None:
        self.log.info("creating_container", image=self.resource.image.name)
        self.check_dependencies()

        ids = self.lookup()
        if ids:
            raise AlreadyExistsError(self.resource.id, ids)

        container_id = self.external(
            "create container", self.tasks.create_container, self.resource
        )
        self.resource.runtime["container_id"] = container_id

        health_check = self.resource.health_check
        if health_check is not None and health_check.http:
            self.wait(
                "http health check",
                self.context.health_checker.poll_http,
                health_check.http,
                health_check.timeout_seconds,
            )

    def destroy(self) -> None:
        self.log.info("destroying_container")
        for container_id in self.lookup():
            self.external("remove container", self.tasks.remove_container, container_id)

    def lookup(self) -> list[str]:
        return self.external(
            "find container",
            self.tasks.find_container_ids,
            self.resource.name,
            self.resource.network_name,
        )


def ephemeral_name(prefix: str = "tools") -> str:
    """Return a collision-resistant name for a throwaway container."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@contextmanager
def ephemeral_container(
    tasks: ContainerTasks,
    image: str,
    *,
    network: str | None = None,
    command: Sequence[str] = ("tail", "-f", "/dev/null"),
    volumes: Sequence[Volume] = (),
    environment: dict[str, str] | None = None,
    prefix: str = "tools",
) -> Iterator[str]:
    """
    Run a uniquely named container for the duration of the block.

    The container is not part of any resource graph and is removed on every
    exit path, including errors raised inside the block.

    Yields:
        The container id
    """
    container = Container(
        name=ephemeral_name(prefix),
        image=Image(name=image),
        network=NetworkAttachment(name=f"network.{network}") if network else None,
        command=list(command),
        volumes=list(volumes),
        environment=environment or {},
    )
    container_id = tasks.create_container(container)
    logger.info("ephemeral_container_started", name=container.name, id=container_id)
    try:
        yield container_id
    finally:
        tasks.remove_container(container_id)
        logger.info("ephemeral_container_removed", name=container.name, id=container_id)
