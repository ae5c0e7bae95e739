"""
Shared behaviour of container based clusters.

A cluster runs as a privileged server container with a persistent volume
mounted at ``/images`` and its API published on a random host port.
"""

from __future__ import annotations

from collections.abc import Sequence

from stackyard.clients.base import CommandError
from stackyard.core.errors import AlreadyExistsError
from stackyard.providers.base import Provider
from stackyard.resources.models import Container

# Host ports for cluster APIs are drawn from [64000, 65000)
API_PORT_MIN = 64000
API_PORT_MAX = 65000


class ClusterProvider(Provider):
    """Base provider for clusters whose server is a single container."""

    @property
    def server_name(self) -> str:
        return f"server.{self.resource.name}"

    @property
    def volume_name(self) -> str:
        return f"{self.resource.name}-images"

    def random_api_port(self) -> int:
        return self.context.rng.randrange(API_PORT_MIN, API_PORT_MAX)

    def ensure_absent(self) -> None:
        ids = self.lookup()
        if ids:
            raise AlreadyExistsError(self.resource.id, ids)

    def create_volume(self) -> str:
        volume = self.external("create volume", self.tasks.create_volume, self.volume_name)
        self.resource.runtime["volume"] = volume
        return volume

    def create_server(self, server: Container) -> str:
        container_id = self.external("create server", self.tasks.create_container, server)
        self.resource.runtime["container_id"] = container_id
        return container_id

    def import_images(self, container_id: str, load_command: Sequence[str]) -> None:
        """Load the cluster's images into the server so it never pulls them itself.

        A failed import only means the cluster pulls images on demand, so it is
        logged and does not fail the cluster.
        """
        images = self.resource.images
        if not images:
            return
        try:
            self.tasks.import_images(container_id, images, load_command)
        except (CommandError, OSError) as e:
            self.log.warning(
                "image_import_failed",
                images=[image.name for image in images],
                error=str(e),
            )

    def destroy(self) -> None:
        self.log.info("destroying_cluster")
        for container_id in self.lookup():
            self.external("remove server", self.tasks.remove_container, container_id)
        self.external("remove volume", self.tasks.remove_volume, self.volume_name)

    def lookup(self) -> list[str]:
        return self.external(
            "find server",
            self.tasks.find_container_ids,
            self.server_name,
            self.resource.network_name,
        )
