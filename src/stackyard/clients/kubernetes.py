"""
Kubernetes client used for readiness checks against generated kubeconfigs.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog
import yaml

from stackyard.health.checker import HealthChecker

logger = structlog.get_logger()

# Lazy import kubernetes to keep CLI start-up fast
_kubernetes_available: bool | None = None


def _check_kubernetes_available() -> bool:
    """Check if kubernetes package is installed."""
    global _kubernetes_available
    if _kubernetes_available is None:
        try:
            import kubernetes  # noqa: F401

            _kubernetes_available = True
        except ImportError:
            _kubernetes_available = False
    return _kubernetes_available


class KubernetesClientError(RuntimeError):
    """Raised when the Kubernetes client can not be configured."""


class KubernetesClient:
    """
    Pod readiness checks for a single cluster.

    Each provider creates its own client, so configuring one cluster never
    affects a check running against another.
    """

    def __init__(self, checker: HealthChecker | None = None, *, timeout: float = 10.0) -> None:
        self._checker = checker or HealthChecker()
        self._timeout = timeout
        self._core_api: Any = None

    def set_config(self, kubeconfig: Path) -> None:
        """Point the client at the cluster described by ``kubeconfig``."""
        if not _check_kubernetes_available():
            raise KubernetesClientError("kubernetes package not installed")

        from kubernetes import client, config

        try:
            api_client = config.new_client_from_config(config_file=str(kubeconfig))
        except (config.ConfigException, yaml.YAMLError, OSError, ValueError, TypeError) as e:
            raise KubernetesClientError(f"Failed to load kubeconfig {kubeconfig}: {e}") from e
        self._core_api = client.CoreV1Api(api_client)

    def pods_ready(self, selector: str, timeout: float | None = None) -> bool:
        """Return True if pods match ``selector`` and all of them are ready.

        ``timeout`` caps the request below the client's own timeout.
        """
        if self._core_api is None:
            raise KubernetesClientError("set_config must be called before checking pods")

        import urllib3
        from kubernetes.client.exceptions import ApiException

        request_timeout = self._timeout if timeout is None else min(self._timeout, timeout)
        try:
            pods = self._core_api.list_pod_for_all_namespaces(
                label_selector=selector,
                _request_timeout=request_timeout,
            )
        except (ApiException, urllib3.exceptions.HTTPError, OSError) as e:
            logger.debug("pod_list_failed", selector=selector, error=str(e))
            return False

        if not pods.items:
            return False
        return all(_pod_ready(pod) for pod in pods.items)

    def health_check_pods(self, selectors: Sequence[str], timeout: float) -> None:
        """Block until every selector matches only ready pods, or time out."""
        self._checker.poll_pods_ready(selectors, timeout, self.pods_ready)


def _pod_ready(pod: Any) -> bool:
    if pod.status is None or pod.status.phase != "Running":
        return False
    statuses = pod.status.container_statuses or []
    return bool(statuses) and all(status.ready for status in statuses)
