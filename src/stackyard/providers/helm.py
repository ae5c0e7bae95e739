"""
Helm chart releases installed into a blueprint's Kubernetes cluster.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import ClassVar

from stackyard.clients.helm import ReleaseNotFoundError
from stackyard.config.paths import kube_config_path
from stackyard.core.errors import AlreadyExistsError, DependencyUnresolvedError
from stackyard.providers.base import Provider, ProviderContext
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Helm, ResourceType


class HelmProvider(Provider):
    """
    Install and uninstall a chart release.

    The helm CLI can not run concurrently, even for unrelated releases, so
    every helm invocation holds the context's ``helm_lock``. The lock is
    released as soon as the invocation returns, before any health check, so
    releases waiting for their pods never block other installs.
    """

    resource_type: ClassVar[ResourceType] = ResourceType.HELM
    resource: Helm

    def __init__(self, resource: Helm, graph: ResourceGraph, context: ProviderContext) -> None:
        super().__init__(resource, graph, context)
        self._lock: threading.Lock = context.helm_lock

    def create(self) -> None:
        self.log.info("creating_helm_release", chart=self.resource.chart)
        self.check_dependencies()
        kubeconfig = self.kubeconfig_path()

        # Used by the health check
        kube = self.context.kubernetes_factory()
        self.external("configure kubernetes client", kube.set_config, kubeconfig)

        helm = self.context.helm
        with self._lock:
            if self.external("helm status", helm.status, kubeconfig, self.release, self.namespace):
                raise AlreadyExistsError(self.resource.id, [self.release])
            self.external(
                "helm install",
                helm.create,
                kubeconfig,
                self.release,
                self.resource.chart,
                self.resource.values,
                self.namespace,
            )

        health_check = self.resource.health_check
        if health_check is not None and health_check.pods:
            self.wait(
                "release pods ready",
                kube.health_check_pods,
                health_check.pods,
                health_check.timeout_seconds,
                failure="healthcheck failed after helm chart setup",
            )

    def destroy(self) -> None:
        self.log.info("destroying_helm_release")
        kubeconfig = self.cluster_kubeconfig()
        if not kubeconfig.exists():
            self.log.info("helm_destroy_skipped", reason="cluster kubeconfig not found")
            return

        with self._lock:
            self.external("helm uninstall", self._uninstall, kubeconfig)

    def _uninstall(self, kubeconfig: Path) -> None:
        try:
            self.context.helm.destroy(kubeconfig, self.release, self.namespace)
        except ReleaseNotFoundError:
            self.log.info("helm_release_not_found")

    def lookup(self) -> list[str]:
        kubeconfig = self.cluster_kubeconfig()
        if not kubeconfig.exists():
            return []
        with self._lock:
            found = self.external(
                "helm status", self.context.helm.status, kubeconfig, self.release, self.namespace
            )
        return [self.release] if found else []

    @property
    def release(self) -> str:
        return self.resource.name

    @property
    def namespace(self) -> str:
        return self.resource.namespace

    def kubeconfig_path(self) -> Path:
        """Resolve the target cluster and return its generated kubeconfig path."""
        try:
            target = self.graph.find_dependent_resource(
                self.resource.cluster, ResourceType.K8S_CLUSTER, referrer=self.resource.id
            )
        except DependencyUnresolvedError as e:
            raise DependencyUnresolvedError(
                e.reference, f"Unable to find cluster: {e.message}", self.resource.id
            ) from e
        _, path = kube_config_path(target.name, self.context.settings)
        return path

    def cluster_kubeconfig(self) -> Path:
        """Kubeconfig path derived from the cluster reference alone.

        Teardown uses this so a release can be removed after its cluster
        resource has already left the graph.
        """
        _, path = kube_config_path(self.resource.cluster_name, self.context.settings)
        return path
