"""Tests for resources/models.py.

Tests for resource variants, lifecycle transitions, dependency references
and duration parsing.
"""

import pytest
from pydantic import ValidationError

from stackyard.resources.models import (
    Container,
    HealthCheck,
    Helm,
    K8sCluster,
    Network,
    NomadCluster,
    ResourceType,
    Status,
    build_resource,
    parse_duration,
    resource_from_state,
    split_reference,
)


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("60s", 60.0),
            ("500ms", 0.5),
            ("2m", 120.0),
            ("1h", 3600.0),
            ("1m30s", 90.0),
            ("45", 45.0),
            (10, 10.0),
        ],
    )
    def test_valid_durations(self, value, expected):
        """Test units, combined forms and bare numbers."""
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "10x", "s10", "1m foo"])
    def test_invalid_durations(self, value):
        """Test malformed durations are rejected."""
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_negative_duration(self):
        """Test negative durations are rejected."""
        with pytest.raises(ValueError):
            parse_duration(-1)


class TestSplitReference:
    """Tests for split_reference."""

    def test_valid_reference(self):
        assert split_reference("k8s_cluster.dev") == (ResourceType.K8S_CLUSTER, "dev")

    def test_name_may_contain_dots(self):
        assert split_reference("container.web.v2") == (ResourceType.CONTAINER, "web.v2")

    @pytest.mark.parametrize("reference", ["network", "network.", "bogus.thing"])
    def test_invalid_reference(self, reference):
        with pytest.raises(ValueError):
            split_reference(reference)


class TestResource:
    """Tests for the common resource behaviour."""

    def test_identifier_and_info(self):
        """Test id and info are derived from type and name."""
        network = Network(name="test")

        assert network.id == "network.test"
        assert network.type == ResourceType.NETWORK
        assert network.info.status == Status.PENDING_CREATION

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            Network(name=" ")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            Network(name="test", colour="blue")

    def test_invalid_depends_on_rejected(self):
        with pytest.raises(ValidationError):
            Network(name="test", depends_on=["nothing"])

    def test_lifecycle_transitions(self):
        """Test the create then destroy lifecycle."""
        network = Network(name="test")

        network.set_status(Status.CREATING)
        network.set_status(Status.CREATED)
        network.set_status(Status.PENDING_DESTROY)
        network.set_status(Status.DESTROYED)

        assert network.status == Status.DESTROYED

    def test_backward_transition_rejected(self):
        """Test a created resource can not go back to creating."""
        network = Network(name="test", status=Status.CREATED)

        with pytest.raises(ValueError, match="created -> creating"):
            network.set_status(Status.CREATING)

    def test_failed_resource_can_be_retried(self):
        network = Network(name="test", status=Status.FAILED, error="boom")

        network.set_status(Status.CREATING)

        assert network.status == Status.CREATING
        assert network.error is None

    def test_failure_records_error(self):
        network = Network(name="test")
        network.set_status(Status.CREATING)

        network.set_status(Status.FAILED, "boom")

        assert network.error == "boom"


class TestReferences:
    """Tests for explicit and implicit dependency references."""

    def test_container_network_is_a_reference(self):
        container = Container(
            name="testing",
            image="consul:1.6.1",
            network="network.test",
            depends_on=["container.other"],
        )

        assert container.references() == [
            ("container.other", None),
            ("network.test", ResourceType.NETWORK),
        ]
        assert container.network_name == "test"

    def test_network_must_reference_a_network(self):
        with pytest.raises(ValidationError):
            Container(name="testing", image="consul", network="container.other")

    def test_helm_cluster_is_a_reference(self):
        helm = Helm(name="app", cluster="k8s_cluster.dev", chart="./chart")

        assert helm.references() == [("k8s_cluster.dev", ResourceType.K8S_CLUSTER)]
        assert helm.cluster_name == "dev"

    def test_image_strings_are_coerced(self):
        cluster = NomadCluster(name="dev", images=["consul:1.6.1", {"name": "redis"}])

        assert [image.name for image in cluster.images] == ["consul:1.6.1", "redis"]

    def test_nomad_nodes_must_be_positive(self):
        with pytest.raises(ValidationError):
            NomadCluster(name="dev", nodes=0)

    def test_k8s_driver_is_k3s(self):
        assert K8sCluster(name="dev").driver == "k3s"
        with pytest.raises(ValidationError):
            K8sCluster(name="dev", driver="kind")


class TestHealthCheck:
    def test_invalid_timeout_rejected(self):
        with pytest.raises(ValidationError):
            HealthCheck(timeout="soon")

    def test_timeout_seconds(self):
        assert HealthCheck(timeout="1m").timeout_seconds == 60.0


class TestSerialization:
    """Tests for config() and the state representation."""

    def test_config_excludes_engine_fields(self):
        container = Container(
            name="testing",
            image="consul",
            status=Status.CREATED,
            runtime={"container_id": "abc"},
        )

        config = container.config()

        assert "name" not in config
        assert "status" not in config
        assert "runtime" not in config
        assert config["image"]["name"] == "consul"

    def test_state_round_trip(self):
        """Test a resource rebuilt from state matches the original."""
        container = Container(
            name="testing",
            image="consul",
            network="network.test",
            ports=[{"local": 8500, "host": 18500}],
            status=Status.FAILED,
            error="boom",
            runtime={"container_id": "abc"},
        )

        restored = resource_from_state(container.to_state())

        assert isinstance(restored, Container)
        assert restored.to_state() == container.to_state()
        assert restored.ports[0].host == 18500

    def test_build_resource(self):
        resource = build_resource("network", "test", {"subnet": "10.0.0.0/24"})

        assert isinstance(resource, Network)
        assert resource.subnet == "10.0.0.0/24"
