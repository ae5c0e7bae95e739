"""
Resources, the resource graph and its persisted state.
"""

from stackyard.resources.blueprint import load_blueprint, parse_blueprint
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import (
    Container,
    HealthCheck,
    Helm,
    Image,
    K8sCluster,
    Network,
    NetworkAttachment,
    NomadCluster,
    Port,
    Resource,
    ResourceInfo,
    ResourceType,
    Status,
    Volume,
    build_resource,
    parse_duration,
    split_reference,
)
from stackyard.resources.state import load_state, merge_state, remove_state, save_state

__all__ = [
    # Models
    "ResourceType",
    "Status",
    "Resource",
    "ResourceInfo",
    "Network",
    "Container",
    "K8sCluster",
    "NomadCluster",
    "Helm",
    "Image",
    "Port",
    "Volume",
    "NetworkAttachment",
    "HealthCheck",
    "build_resource",
    "parse_duration",
    "split_reference",
    # Graph and state
    "ResourceGraph",
    "load_blueprint",
    "parse_blueprint",
    "load_state",
    "save_state",
    "remove_state",
    "merge_state",
]
