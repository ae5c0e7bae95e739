"""
Readiness polling.

Every check polls an external signal at a fixed interval until it reports
ready or the caller's timeout elapses. A check never blocks past its
timeout: each HTTP request is bounded by the time remaining, and the retry
loop stops before a sleep would overrun the deadline.

Timeouts raise :class:`HealthCheckTimeout`; transport problems that retrying
can not fix (malformed URL, unsupported scheme) raise
:class:`HealthCheckTransportError` immediately.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import httpx
import structlog
from tenacity import Retrying, retry_if_exception_type, stop_before_delay, wait_fixed

logger = structlog.get_logger()

DEFAULT_INTERVAL = 1.0
DEFAULT_REQUEST_TIMEOUT = 5.0


class HealthCheckTimeout(TimeoutError):
    """The readiness condition did not hold before the timeout."""

    def __init__(self, target: str, timeout: float, last_error: str | None = None):
        message = f"timed out after {timeout:g}s waiting for {target}"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.target = target
        self.timeout = timeout
        self.last_error = last_error


class HealthCheckTransportError(ConnectionError):
    """The readiness endpoint can not be reached in a way retrying will not fix."""

    def __init__(self, target: str, cause: BaseException):
        super().__init__(f"unable to check {target}: {cause}")
        self.target = target
        self.cause = cause


class _NotReady(Exception):
    """Raised by a probe to request another attempt."""


class HealthChecker:
    """Poll external readiness signals until they succeed or time out."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        interval: float = DEFAULT_INTERVAL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client()
        self._interval = interval
        self._request_timeout = request_timeout
        self._sleep = sleep

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HealthChecker:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def poll(self, probe: Callable[[float], str | None], *, target: str, timeout: float) -> None:
        """Run ``probe`` until it reports ready or ``timeout`` seconds elapse.

        ``probe`` receives the seconds remaining and returns ``None`` when the
        condition holds, or a short description of why it does not yet.
        """
        deadline = time.monotonic() + timeout

        def attempt() -> None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise _NotReady("deadline reached")
            reason = probe(remaining)
            if reason is not None:
                raise _NotReady(reason)

        retrying = Retrying(
            stop=stop_before_delay(timeout),
            wait=wait_fixed(self._interval),
            retry=retry_if_exception_type(_NotReady),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            retrying(attempt)
        except _NotReady as e:
            logger.warning("health_check_timeout", target=target, timeout=timeout, reason=str(e))
            raise HealthCheckTimeout(target, timeout, str(e)) from None
        logger.debug("health_check_passed", target=target)

    def poll_http(self, url: str, timeout: float) -> None:
        """Wait until ``url`` answers a GET with a 2xx status."""

        def probe(remaining: float) -> str | None:
            response = self._get(url, remaining)
            if response.is_success:
                return None
            return f"HTTP {response.status_code}"

        self.poll(probe, target=url, timeout=timeout)

    def poll_cluster_leader(self, api_url: str, timeout: float) -> None:
        """Wait until a Nomad cluster at ``api_url`` reports an elected leader."""
        url = f"{api_url.rstrip('/')}/v1/status/leader"

        def probe(remaining: float) -> str | None:
            response = self._get(url, remaining)
            if not response.is_success:
                return f"HTTP {response.status_code}"
            leader = _json(response)
            if isinstance(leader, str) and leader:
                return None
            return "no leader elected"

        self.poll(probe, target=url, timeout=timeout)

    def poll_node_count(self, api_url: str, expected_nodes: int, timeout: float) -> None:
        """Wait until at least ``expected_nodes`` Nomad client nodes are ready."""
        url = f"{api_url.rstrip('/')}/v1/nodes"

        def probe(remaining: float) -> str | None:
            response = self._get(url, remaining)
            if not response.is_success:
                return f"HTTP {response.status_code}"
            nodes = _json(response)
            if not isinstance(nodes, list):
                return "unexpected node list"
            ready = sum(
                1 for node in nodes if isinstance(node, dict) and node.get("Status") == "ready"
            )
            if ready >= expected_nodes:
                return None
            return f"{ready}/{expected_nodes} nodes ready"

        self.poll(probe, target=url, timeout=timeout)

    def poll_pods_ready(
        self,
        selectors: Sequence[str],
        timeout: float,
        pods_ready: Callable[[str, float], bool],
    ) -> None:
        """Wait until every label selector matches only ready pods.

        ``pods_ready`` answers the question for a single selector within the
        seconds it is given, normally
        :meth:`stackyard.clients.kubernetes.KubernetesClient.pods_ready`.
        Selectors not reached before the deadline count as not ready.
        """

        def probe(remaining: float) -> str | None:
            deadline = time.monotonic() + remaining
            pending = []
            for index, selector in enumerate(selectors):
                left = deadline - time.monotonic()
                if left <= 0:
                    pending.extend(selectors[index:])
                    break
                if not pods_ready(selector, left):
                    pending.append(selector)
            if pending:
                return f"pods not ready: {', '.join(pending)}"
            return None

        self.poll(probe, target=f"pods {', '.join(selectors)}", timeout=timeout)

    def poll_file(self, path: Path, timeout: float) -> None:
        """Wait until ``path`` exists and is not empty."""

        def probe(remaining: float) -> str | None:
            if path.exists() and path.stat().st_size > 0:
                return None
            return f"{path} not written"

        self.poll(probe, target=str(path), timeout=timeout)

    def _get(self, url: str, remaining: float) -> httpx.Response:
        try:
            return self._client.get(url, timeout=min(self._request_timeout, remaining))
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise HealthCheckTransportError(url, e) from e
        except httpx.TransportError as e:
            raise _NotReady(f"{type(e).__name__}: {e}") from e


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
