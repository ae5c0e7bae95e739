"""Tests for orchestration/results.py."""

from stackyard.core.errors import ProviderError
from stackyard.orchestration.results import ResultCollector, RunResult


class TestResultCollector:
    """Tests for ResultCollector and RunResult."""

    def test_collects_outcomes(self):
        collector = ResultCollector("create")
        collector.record_created("network.test")
        collector.record_skipped("container.cache")
        collector.record_error("container.web", ProviderError("container.web", "pull failed"))
        collector.record_error("helm.app", "dependency container.web failed")

        result = collector.finalize(1.23456)

        assert result.created == ["network.test"]
        assert result.skipped == ["container.cache"]
        assert result.failed == {
            "container.web": "pull failed",
            "helm.app": "dependency container.web failed",
        }
        assert result.total_resources == 4
        assert result.success is False

    def test_to_dict(self):
        result = RunResult(action="destroy", destroyed=["container.web"], duration_seconds=0.12345)

        assert result.to_dict() == {
            "action": "destroy",
            "created": [],
            "skipped": [],
            "destroyed": ["container.web"],
            "failed": {},
            "duration_seconds": 0.123,
            "success": True,
        }
