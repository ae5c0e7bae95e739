from __future__ import annotations

from typing import ClassVar

from stackyard.providers.cluster import ClusterProvider
from stackyard.resources.models import (
    Container,
    Image,
    NomadCluster,
    Port,
    ResourceType,
    Volume,
)

NOMAD_BASE_IMAGE = "shipyardrun/nomad"
NOMAD_API_PORT = 4646


class NomadClusterProvider(ClusterProvider):
    """Nomad clusters running server and clients in one container."""

    resource_type: ClassVar[ResourceType] = ResourceType.NOMAD_CLUSTER
    resource: NomadCluster

    def create(self) -> None:
        self.log.info("creating_cluster", nodes=self.resource.nodes)
        self.check_dependencies()
        self.ensure_absent()

        volume = self.create_volume()

        api_port = self.random_api_port()
        self.resource.runtime["api_port"] = api_port

        # Privileged: the docker driver inside the server rewrites iptables rules
        server = Container(
            name=self.server_name,
            image=Image(name=f"{NOMAD_BASE_IMAGE}:{self.resource.version}"),
            network=self.resource.network,
            privileged=True,
            environment=dict(self.resource.environment),
            volumes=[Volume(source=volume, destination="/images", type="volume")],
            ports=[Port(local=NOMAD_API_PORT, host=api_port)],
        )
        container_id = self.create_server(server)

        self.import_images(container_id, ["docker", "load"])

        api_url = f"http://localhost:{api_port}"
        self.resource.runtime["api_url"] = api_url

        settings = self.context.settings
        checker = self.context.health_checker
        self.wait(
            "leader elected",
            checker.poll_cluster_leader,
            api_url,
            settings.nomad_leader_timeout,
        )
        self.wait(
            "client nodes ready",
            checker.poll_node_count,
            api_url,
            self.resource.nodes,
            settings.nomad_nodes_timeout,
        )
