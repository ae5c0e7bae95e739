"""
Kubernetes clusters backed by k3s.

The k3s server writes its kubeconfig into a per-cluster host directory that
is bind mounted at ``/output``. Once the file appears its API server address
is rewritten to the random host port so tools on the host can use it.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import ClassVar

import yaml

from stackyard.clients.docker import container_fqdn
from stackyard.clients.kubernetes import KubernetesClientError
from stackyard.config.paths import DOCKER_KUBECONFIG_FILENAME, ensure_dir, kube_config_path
from stackyard.providers.cluster import ClusterProvider
from stackyard.resources.models import Container, Image, K8sCluster, Port, ResourceType, Volume

K3S_BASE_IMAGE = "rancher/k3s"
K3S_API_PORT = 6443
K3S_OUTPUT_DIR = "/output"

# Pods that must be ready before the cluster can accept workloads
CORE_POD_SELECTORS = ["app=local-path-provisioner", "k8s-app=kube-dns"]


def rewrite_kubeconfig_server(source: Path, server: str, target: Path | None = None) -> None:
    """Point every cluster entry of a kubeconfig at ``server``.

    The result replaces ``source`` unless a ``target`` path is given. A file
    that is not a kubeconfig raises :class:`KubernetesClientError`.
    """
    try:
        config = yaml.safe_load(source.read_text()) or {}
    except yaml.YAMLError as e:
        raise KubernetesClientError(f"invalid kubeconfig {source}: {e}") from e

    clusters = (config.get("clusters") or []) if isinstance(config, dict) else None
    if not isinstance(clusters, list):
        raise KubernetesClientError(f"invalid kubeconfig {source}: no cluster list")
    for entry in clusters:
        cluster = entry.setdefault("cluster", {}) if isinstance(entry, dict) else None
        if not isinstance(cluster, dict):
            raise KubernetesClientError(f"invalid kubeconfig {source}: malformed cluster entry")
        cluster["server"] = server
    (target or source).write_text(yaml.safe_dump(config, default_flow_style=False))


class K8sClusterProvider(ClusterProvider):
    resource_type: ClassVar[ResourceType] = ResourceType.K8S_CLUSTER
    resource: K8sCluster

    def create(self) -> None:
        self.log.info("creating_cluster", driver=self.resource.driver)
        self.check_dependencies()
        self.ensure_absent()

        settings = self.context.settings
        volume = self.create_volume()

        config_dir, config_file = kube_config_path(self.resource.name, settings)
        self.external("create kubeconfig directory", ensure_dir, config_dir)
        config_file.unlink(missing_ok=True)

        api_port = self.random_api_port()
        self.resource.runtime["api_port"] = api_port
        server_host = container_fqdn(self.server_name, self.resource.network_name)

        server = Container(
            name=self.server_name,
            image=Image(name=f"{K3S_BASE_IMAGE}:{self.resource.version}"),
            network=self.resource.network,
            privileged=True,
            command=[
                "server",
                f"--https-listen-port={K3S_API_PORT}",
                "--disable=traefik",
                f"--tls-san={server_host}",
                "--snapshotter=native",
            ],
            environment={
                **self.resource.environment,
                "K3S_KUBECONFIG_OUTPUT": f"{K3S_OUTPUT_DIR}/{config_file.name}",
            },
            volumes=[
                Volume(source=volume, destination="/images", type="volume"),
                Volume(source=str(config_dir), destination=K3S_OUTPUT_DIR, type="bind"),
            ],
            ports=[Port(local=K3S_API_PORT, host=api_port)],
        )
        container_id = self.create_server(server)

        self.wait(
            "kubeconfig written",
            self.context.health_checker.poll_file,
            config_file,
            settings.cluster_timeout,
        )
        self.external(
            "write docker kubeconfig",
            rewrite_kubeconfig_server,
            config_file,
            f"https://{server_host}:{K3S_API_PORT}",
            config_dir / DOCKER_KUBECONFIG_FILENAME,
        )
        self.external(
            "update kubeconfig",
            rewrite_kubeconfig_server,
            config_file,
            f"https://127.0.0.1:{api_port}",
        )
        self.resource.runtime["kubeconfig"] = str(config_file)

        self.import_images(container_id, ["ctr", "images", "import", "-"])

        kube = self.context.kubernetes_factory()
        self.external("configure kubernetes client", kube.set_config, config_file)
        self.wait(
            "core pods ready",
            kube.health_check_pods,
            CORE_POD_SELECTORS,
            settings.cluster_timeout,
        )

    def destroy(self) -> None:
        super().destroy()
        config_dir, _ = kube_config_path(self.resource.name, self.context.settings)
        if config_dir.exists():
            self.external("remove kubeconfig", shutil.rmtree, config_dir)
