from __future__ import annotations

from typing import ClassVar

from stackyard.core.errors import AlreadyExistsError
from stackyard.providers.base import Provider
from stackyard.resources.models import Network, ResourceType


class NetworkProvider(Provider):
    """Bridge networks containers and clusters attach to."""

    resource_type: ClassVar[ResourceType] = ResourceType.NETWORK
    resource: Network

    def create(self) -> None:
        self.log.info("creating_network", subnet=self.resource.subnet)
        self.check_dependencies()

        ids = self.lookup()
        if ids:
            raise AlreadyExistsError(self.resource.id, ids)

        network_id = self.external("create network", self.tasks.create_network, self.resource)
        self.resource.runtime["network_id"] = network_id

    def destroy(self) -> None:
        self.log.info("destroying_network")
        for network_id in self.lookup():
            self.external("remove network", self.tasks.remove_network, network_id)

    def lookup(self) -> list[str]:
        return self.external("find network", self.tasks.find_network_ids, self.resource.name)
