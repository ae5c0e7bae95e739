"""Tests for resources/graph.py."""

import pytest

from stackyard.core.errors import (
    DependencyUnresolvedError,
    DuplicateResourceError,
    ResourceNotFoundError,
)
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Container, Helm, K8sCluster, Network, ResourceType


@pytest.fixture
def graph():
    """network.test <- container.testing, k8s_cluster.dev <- helm.app"""
    return ResourceGraph(
        [
            Network(name="test"),
            Container(name="testing", image="consul", network="network.test"),
            K8sCluster(name="dev", network="network.test"),
            Helm(name="app", cluster="k8s_cluster.dev", chart="./chart"),
        ]
    )


class TestResourceGraph:
    """Tests for adding and finding resources."""

    def test_add_duplicate_rejected(self, graph):
        """Test identifiers are unique within the graph."""
        with pytest.raises(DuplicateResourceError):
            graph.add_resource(Network(name="test"))

    def test_same_name_different_type_allowed(self, graph):
        graph.add_resource(Container(name="test", image="nginx"))

        assert "container.test" in graph

    def test_find_by_type_keeps_declaration_order(self):
        graph = ResourceGraph(
            [
                Container(name="b", image="nginx"),
                Network(name="net"),
                Container(name="a", image="nginx"),
            ]
        )

        assert [r.name for r in graph.find_by_type(ResourceType.CONTAINER)] == ["b", "a"]
        assert [r.name for r in graph.find_by_type("network")] == ["net"]

    def test_find_by_identifier(self, graph):
        assert graph.find_by_identifier("container.testing").name == "testing"

    def test_find_by_identifier_missing(self, graph):
        with pytest.raises(ResourceNotFoundError):
            graph.find_by_identifier("container.nope")

    def test_remove_resource(self, graph):
        removed = graph.remove_resource("helm.app")

        assert removed.id == "helm.app"
        assert len(graph) == 3
        with pytest.raises(ResourceNotFoundError):
            graph.remove_resource("helm.app")


class TestDependencyResolution:
    """Tests for resolving dependency references."""

    def test_container_on_network(self):
        """A container referencing a declared network resolves to it."""
        graph = ResourceGraph()
        graph.add_resource(Network(name="test"))
        graph.add_resource(Container(name="testing", image="consul", network="network.test"))

        container = graph.find_by_identifier("container.testing")
        target = graph.find_dependent_resource(container.network.name, ResourceType.NETWORK)

        assert target.id == "network.test"
        assert [d.id for d in graph.dependencies(container)] == ["network.test"]

    def test_unresolved_reference(self):
        graph = ResourceGraph([Container(name="testing", image="consul", network="network.nope")])

        with pytest.raises(DependencyUnresolvedError) as exc_info:
            graph.validate()

        assert exc_info.value.reference == "network.nope"
        assert exc_info.value.resource == "container.testing"

    def test_unexpected_type(self, graph):
        with pytest.raises(DependencyUnresolvedError, match="must point at a network"):
            graph.find_dependent_resource("container.testing", ResourceType.NETWORK)

    def test_malformed_reference(self, graph):
        with pytest.raises(DependencyUnresolvedError):
            graph.find_dependent_resource("testing")

    def test_dependency_ids_non_strict_ignores_missing(self, graph):
        graph.remove_resource("network.test")
        container = graph.find_by_identifier("container.testing")

        assert graph.dependency_ids(container, strict=False) == set()
        with pytest.raises(DependencyUnresolvedError):
            graph.dependency_ids(container)

    def test_dependents_are_transitive(self, graph):
        dependents = [r.id for r in graph.dependents("network.test")]

        assert dependents == ["container.testing", "k8s_cluster.dev", "helm.app"]

    def test_validate_passes(self, graph):
        graph.validate()
