"""Tests for the network and container providers and the provider registry."""

import pytest

from stackyard.clients.base import CommandError
from stackyard.core.errors import (
    AlreadyExistsError,
    DependencyUnresolvedError,
    ExternalCallFailedError,
    HealthCheckTimeoutError,
)
from stackyard.providers import (
    ContainerProvider,
    HelmProvider,
    K8sClusterProvider,
    NetworkProvider,
    NomadClusterProvider,
    ProviderRegistry,
    create_default_registry,
    ephemeral_container,
)
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Container, Network, ResourceType, Status


@pytest.fixture
def network():
    return Network(name="test", subnet="10.0.0.0/24")


@pytest.fixture
def container():
    return Container(
        name="testing",
        image="consul:1.6.1",
        network="network.test",
        health_check={"timeout": "5s", "http": "http://localhost:18500/v1/status/leader"},
    )


@pytest.fixture
def graph(network, container):
    network.status = Status.CREATED
    return ResourceGraph([network, container])


class TestNetworkProvider:
    """Tests for NetworkProvider."""

    def test_create(self, network, context, tasks):
        provider = NetworkProvider(network, ResourceGraph([network]), context)

        provider.create()

        assert network.runtime["network_id"] in tasks.networks
        assert provider.lookup() == [network.runtime["network_id"]]

    def test_create_existing_network(self, network, context, tasks):
        """Test a network that already exists fails without creating another."""
        tasks.networks["net-0"] = "test"
        provider = NetworkProvider(network, ResourceGraph([network]), context)

        with pytest.raises(AlreadyExistsError) as exc_info:
            provider.create()

        assert exc_info.value.resource == "network.test"
        assert tasks.called("create_network") == []

    def test_destroy_twice(self, network, context, tasks):
        """Test destroying an absent network is a no-op."""
        provider = NetworkProvider(network, ResourceGraph([network]), context)
        provider.create()

        provider.destroy()
        provider.destroy()

        assert tasks.networks == {}
        assert len(tasks.called("remove_network")) == 1

    def test_engine_failure_is_wrapped(self, network, context, tasks):
        tasks.fail["create_network"] = CommandError(["docker", "network"], 1, "daemon down")
        provider = NetworkProvider(network, ResourceGraph([network]), context)

        with pytest.raises(ExternalCallFailedError) as exc_info:
            provider.create()

        assert exc_info.value.resource == "network.test"
        assert "daemon down" in exc_info.value.message


class TestContainerProvider:
    """Tests for ContainerProvider."""

    def test_create(self, graph, container, context, tasks, checker):
        ContainerProvider(container, graph, context).create()

        container_id = container.runtime["container_id"]
        assert tasks.containers[container_id][:2] == ("testing", "test")
        assert checker.calls == [
            ("poll_http", ("http://localhost:18500/v1/status/leader", 5.0)),
        ]

    def test_network_must_be_created(self, graph, network, container, context, tasks):
        network.status = Status.PENDING_CREATION

        with pytest.raises(DependencyUnresolvedError, match="network.test"):
            ContainerProvider(container, graph, context).create()

        assert tasks.called("create_container") == []

    def test_already_exists(self, graph, container, context, tasks):
        tasks.containers["ctr-0"] = ("testing", "test", None)

        with pytest.raises(AlreadyExistsError):
            ContainerProvider(container, graph, context).create()

    def test_health_check_timeout(self, graph, container, context, checker):
        checker.timeouts.add("poll_http")

        with pytest.raises(HealthCheckTimeoutError) as exc_info:
            ContainerProvider(container, graph, context).create()

        assert exc_info.value.resource == "container.testing"
        # The container exists, so a later destroy can clean it up
        assert "container_id" in container.runtime

    def test_destroy(self, graph, container, context, tasks):
        provider = ContainerProvider(container, graph, context)
        provider.create()

        provider.destroy()

        assert tasks.containers == {}
        assert provider.lookup() == []


class TestEphemeralContainer:
    """Tests for ephemeral_container."""

    def test_removed_after_block(self, tasks):
        with ephemeral_container(tasks, "shipyardrun/tools", network="test") as container_id:
            assert container_id in tasks.containers

        assert tasks.containers == {}

    def test_removed_on_error(self, tasks):
        with pytest.raises(RuntimeError):
            with ephemeral_container(tasks, "shipyardrun/tools"):
                raise RuntimeError("boom")

        assert tasks.containers == {}
        assert len(tasks.called("remove_container")) == 1

    def test_names_do_not_collide(self, tasks):
        for _ in range(20):
            with ephemeral_container(tasks, "shipyardrun/tools"):
                pass

        names = {args[0].name for args in tasks.called("create_container")}
        assert len(names) == 20
        assert all(name.startswith("tools-") for name in names)


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_default_registry_covers_every_type(self):
        registry = create_default_registry()

        assert all(registry.supports(rtype) for rtype in ResourceType)
        assert {spec.provider_class for spec in registry.list()} == {
            NetworkProvider,
            ContainerProvider,
            K8sClusterProvider,
            NomadClusterProvider,
            HelmProvider,
        }

    def test_create_provider(self, graph, container, context):
        provider = create_default_registry().create(container, graph, context)

        assert isinstance(provider, ContainerProvider)
        assert provider.resource is container

    def test_unregistered_type(self, graph, container, context):
        registry = ProviderRegistry()
        registry.register(NetworkProvider)

        assert registry.supports("network")
        assert not registry.supports("container")
        with pytest.raises(KeyError, match="container"):
            registry.create(container, graph, context)
