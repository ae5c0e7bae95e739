"""Orchestration package: ordering and driving resources through providers."""

from stackyard.orchestration.engine import Engine
from stackyard.orchestration.ordering import creation_order, destruction_order
from stackyard.orchestration.results import ResultCollector, RunResult

__all__ = [
    "Engine",
    "ResultCollector",
    "RunResult",
    "creation_order",
    "destruction_order",
]
