"""Providers for each resource type and the registry that dispatches to them."""

from stackyard.providers.base import Provider, ProviderContext, build_context
from stackyard.providers.container import ContainerProvider, ephemeral_container
from stackyard.providers.helm import HelmProvider
from stackyard.providers.k8s_cluster import K8sClusterProvider
from stackyard.providers.network import NetworkProvider
from stackyard.providers.nomad_cluster import NomadClusterProvider
from stackyard.providers.registry import (
    ProviderRegistry,
    ProviderSpec,
    create_default_registry,
    register_default_providers,
)

__all__ = [
    "Provider",
    "ProviderContext",
    "build_context",
    "ProviderRegistry",
    "ProviderSpec",
    "create_default_registry",
    "register_default_providers",
    "NetworkProvider",
    "ContainerProvider",
    "K8sClusterProvider",
    "NomadClusterProvider",
    "HelmProvider",
    "ephemeral_container",
]
