from __future__ import annotations

from dataclasses import dataclass

from stackyard.providers.base import Provider, ProviderContext
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Resource, ResourceType


@dataclass(frozen=True)
class ProviderSpec:
    """Metadata describing a registered provider."""

    resource_type: ResourceType
    provider_class: type[Provider]
    description: str | None = None


class ProviderRegistry:
    """Maps each resource type to the provider class that drives it."""

    def __init__(self) -> None:
        self._providers: dict[ResourceType, ProviderSpec] = {}

    def register(
        self,
        provider_class: type[Provider],
        *,
        resource_type: ResourceType | None = None,
        description: str | None = None,
    ) -> None:
        rtype = resource_type or getattr(provider_class, "resource_type", None)
        if rtype is None:
            raise ValueError(f"{provider_class.__name__} does not declare a resource type")
        self._providers[ResourceType(rtype)] = ProviderSpec(
            resource_type=ResourceType(rtype),
            provider_class=provider_class,
            description=description,
        )

    def create(
        self, resource: Resource, graph: ResourceGraph, context: ProviderContext
    ) -> Provider:
        spec = self._providers.get(resource.type)
        if spec is None:
            raise KeyError(f"No provider registered for resource type '{resource.type.value}'")
        return spec.provider_class(resource, graph, context)

    def supports(self, rtype: ResourceType | str) -> bool:
        return ResourceType(rtype) in self._providers

    def list(self) -> list[ProviderSpec]:
        return list(self._providers.values())


def register_default_providers(registry: ProviderRegistry) -> None:
    """Register the built-in provider for every resource type."""
    from stackyard.providers.container import ContainerProvider
    from stackyard.providers.helm import HelmProvider
    from stackyard.providers.k8s_cluster import K8sClusterProvider
    from stackyard.providers.network import NetworkProvider
    from stackyard.providers.nomad_cluster import NomadClusterProvider

    registry.register(NetworkProvider, description="Docker bridge network")
    registry.register(ContainerProvider, description="Single container")
    registry.register(K8sClusterProvider, description="k3s Kubernetes cluster")
    registry.register(NomadClusterProvider, description="Nomad cluster")
    registry.register(HelmProvider, description="Helm chart release")


def create_default_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    register_default_providers(registry)
    return registry
