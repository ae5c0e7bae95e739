"""Tests for resources/state.py."""

import json
import os
from unittest.mock import patch

import pytest

from stackyard.core.errors import StateError, StateNotFoundError
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Container, Helm, K8sCluster, Network, Status
from stackyard.resources.state import (
    STATE_VERSION,
    UNDECLARED,
    load_state,
    merge_state,
    remove_state,
    save_state,
)


@pytest.fixture
def graph():
    return ResourceGraph(
        [
            Network(name="test", status=Status.CREATED, runtime={"network_id": "n1"}),
            Container(
                name="testing",
                image="consul",
                network="network.test",
                status=Status.FAILED,
                error="pull failed",
            ),
            K8sCluster(name="dev", network="network.test", runtime={"api_port": 64123}),
            Helm(name="app", cluster="k8s_cluster.dev", chart="./chart"),
        ]
    )


class TestSaveAndLoad:
    """Tests for the persisted state round trip."""

    def test_round_trip(self, graph, tmp_path):
        """Test reloading reproduces identifiers, statuses and runtime fields."""
        path = tmp_path / "state.json"

        save_state(graph, path)
        loaded = load_state(path)

        assert [r.id for r in loaded] == [r.id for r in graph]
        assert [r.status for r in loaded] == [r.status for r in graph]
        assert [r.to_state() for r in loaded] == [r.to_state() for r in graph]

    def test_document_format(self, graph, tmp_path):
        path = tmp_path / "state.json"

        save_state(graph, path)
        data = json.loads(path.read_text())

        assert data["version"] == STATE_VERSION
        first = data["resources"][0]
        assert first["type"] == "network"
        assert first["name"] == "test"
        assert first["status"] == "created"
        assert first["runtime"] == {"network_id": "n1"}
        assert first["config"]["subnet"] == "10.5.0.0/16"

    def test_save_creates_parent_directory(self, graph, tmp_path):
        path = tmp_path / "nested" / "dir" / "state.json"

        save_state(graph, path)

        assert path.exists()

    def test_failed_write_keeps_previous_state(self, graph, tmp_path):
        """Test a crash while replacing never truncates the existing file."""
        path = tmp_path / "state.json"
        save_state(graph, path)
        before = path.read_text()
        graph.remove_resource("helm.app")

        with patch("stackyard.resources.state.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StateError, match="disk full"):
                save_state(graph, path)

        assert path.read_text() == before
        assert os.listdir(tmp_path) == ["state.json"]

    def test_load_missing_file(self, tmp_path):
        """Test a missing state file means no environment is running."""
        with pytest.raises(StateNotFoundError):
            load_state(tmp_path / "state.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(StateError) as exc_info:
            load_state(path)

        assert not isinstance(exc_info.value, StateNotFoundError)

    def test_load_unknown_version(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "resources": []}))

        with pytest.raises(StateError, match="unsupported state version"):
            load_state(path)

    def test_load_invalid_resource(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 1, "resources": [{"type": "bogus", "name": "x"}]}))

        with pytest.raises(StateError, match="invalid resource"):
            load_state(path)

    def test_remove_state(self, graph, tmp_path):
        path = tmp_path / "state.json"
        save_state(graph, path)

        remove_state(path)
        remove_state(path)

        assert not path.exists()


class TestMergeState:
    """Tests for combining a blueprint with a previous run."""

    def test_created_resources_keep_persisted_record(self, graph):
        declared = ResourceGraph([Network(name="test", subnet="10.9.0.0/16")])

        merged = merge_state(declared, graph)
        network = merged.find_by_identifier("network.test")

        assert network.status == Status.CREATED
        assert network.runtime == {"network_id": "n1"}
        assert network.subnet == "10.5.0.0/16"

    def test_failed_resources_take_new_config(self, graph):
        declared = ResourceGraph(
            [Container(name="testing", image="consul:1.6.1", network="network.test")]
        )

        merged = merge_state(declared, graph)
        container = merged.find_by_identifier("container.testing")

        assert container.image.name == "consul:1.6.1"
        assert container.status == Status.FAILED
        assert container.error == "pull failed"

    def test_undeclared_persisted_resources_are_kept(self, graph):
        declared = ResourceGraph([Network(name="other")])

        merged = merge_state(declared, graph)

        assert [r.id for r in merged] == [
            "network.other",
            "network.test",
            "container.testing",
            "k8s_cluster.dev",
            "helm.app",
        ]

    def test_undeclared_persisted_resources_are_flagged(self, graph):
        declared = ResourceGraph([Network(name="test")])

        merged = merge_state(declared, graph)

        assert UNDECLARED not in merged.find_by_identifier("network.test").runtime
        assert merged.find_by_identifier("container.testing").runtime[UNDECLARED] is True
        assert merged.find_by_identifier("helm.app").runtime[UNDECLARED] is True

    def test_declaring_again_clears_flag(self, graph):
        graph.find_by_identifier("network.test").runtime[UNDECLARED] = True
        graph.find_by_identifier("k8s_cluster.dev").runtime[UNDECLARED] = True
        declared = ResourceGraph(
            [Network(name="test"), K8sCluster(name="dev", network="network.test")]
        )

        merged = merge_state(declared, graph)

        assert merged.find_by_identifier("network.test").runtime == {"network_id": "n1"}
        assert merged.find_by_identifier("k8s_cluster.dev").runtime == {"api_port": 64123}
