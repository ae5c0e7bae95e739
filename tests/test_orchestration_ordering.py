"""Tests for orchestration/ordering.py."""

import random

import pytest

from stackyard.core.errors import CyclicDependencyError, DependencyUnresolvedError
from stackyard.orchestration.ordering import creation_order, destruction_order
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Container, Helm, K8sCluster, Network


def container(name, *depends_on, network=None):
    return Container(name=name, image="alpine", depends_on=list(depends_on), network=network)


def random_graph(seed, size=12):
    """Build a random acyclic graph declared in shuffled order."""
    rng = random.Random(seed)
    names = [f"c{i}" for i in range(size)]
    resources = []
    for i, name in enumerate(names):
        deps = rng.sample(names[:i], k=rng.randint(0, min(i, 3)))
        resources.append(container(name, *(f"container.{d}" for d in deps)))
    rng.shuffle(resources)
    return ResourceGraph(resources)


class TestCreationOrder:
    """Tests for creation_order."""

    def test_dependencies_first(self):
        graph = ResourceGraph(
            [
                Helm(name="app", cluster="k8s_cluster.dev", chart="./chart"),
                container("web", network="network.test"),
                K8sCluster(name="dev", network="network.test"),
                Network(name="test"),
            ]
        )

        order = creation_order(graph)

        assert order[0] == "network.test"
        assert order.index("k8s_cluster.dev") < order.index("helm.app")

    def test_ties_keep_declaration_order(self):
        graph = ResourceGraph([container("b"), container("a"), container("c")])

        assert creation_order(graph) == ["container.b", "container.a", "container.c"]

    @pytest.mark.parametrize("seed", range(25))
    def test_every_dependency_precedes_its_dependents(self, seed):
        graph = random_graph(seed)

        order = creation_order(graph)

        assert sorted(order) == sorted(r.id for r in graph)
        for resource in graph:
            for dep in graph.dependency_ids(resource):
                assert order.index(dep) < order.index(resource.id)

    def test_cycle(self):
        graph = ResourceGraph(
            [
                container("a", "container.b"),
                container("b", "container.c"),
                container("c", "container.a"),
            ]
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            creation_order(graph)

        assert set(exc_info.value.cycle) == {"container.a", "container.b", "container.c"}

    def test_self_reference_is_a_cycle(self):
        with pytest.raises(CyclicDependencyError):
            creation_order(ResourceGraph([container("a", "container.a")]))

    def test_unresolved_reference(self):
        with pytest.raises(DependencyUnresolvedError):
            creation_order(ResourceGraph([container("a", "network.missing")]))


class TestDestructionOrder:
    """Tests for destruction_order."""

    @pytest.mark.parametrize("seed", range(10))
    def test_dependents_first(self, seed):
        graph = random_graph(seed)

        order = destruction_order(graph)

        for resource in graph:
            for dep in graph.dependency_ids(resource):
                assert order.index(resource.id) < order.index(dep)

    def test_missing_references_ignored(self):
        """Test partially destroyed state can still be ordered."""
        graph = ResourceGraph([container("web", "container.gone", network="network.test")])

        assert destruction_order(graph) == ["container.web"]
