"""Readiness polling for created resources."""

from stackyard.health.checker import (
    HealthChecker,
    HealthCheckTimeout,
    HealthCheckTransportError,
)

__all__ = [
    "HealthChecker",
    "HealthCheckTimeout",
    "HealthCheckTransportError",
]
