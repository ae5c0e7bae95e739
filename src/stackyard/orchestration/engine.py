"""
Orchestration engine.

Drives every resource of a graph through its provider in dependency order,
recording each outcome in the resource status and persisting the graph after
every step so an interrupted run leaves state that the next run can resume.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from graphlib import TopologicalSorter
from pathlib import Path
from typing import Callable

import structlog

from stackyard.core.errors import AlreadyExistsError, StackyardError
from stackyard.orchestration.ordering import (
    dependency_map,
    prepared_sorter,
    reverse_map,
)
from stackyard.orchestration.results import ResultCollector, RunResult
from stackyard.providers.base import ProviderContext
from stackyard.providers.registry import ProviderRegistry
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Resource, Status
from stackyard.resources.state import UNDECLARED, remove_state, save_state

logger = structlog.get_logger()

# Statuses a run can be interrupted in, and the error recorded when resuming
INTERRUPTED = {
    Status.CREATING: "interrupted while creating",
    Status.PENDING_DESTROY: "interrupted while destroying",
}

# Runtime flag set to False when objects under the identifier existed before creation
OWNED = "owned"


class Engine:
    """
    Create and destroy the resources of a graph.

    Resources on independent branches run concurrently on up to
    ``max_workers`` threads; with the default of one worker every resource
    is handled strictly in order.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        context: ProviderContext,
        state_path: Path,
        *,
        max_workers: int = 1,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._registry = registry
        self._context = context
        self._state_path = state_path
        self._max_workers = max_workers
        # Guards status changes and state writes across worker threads
        self._state_lock = threading.RLock()

    @property
    def state_path(self) -> Path:
        return self._state_path

    # === Creation ===

    def create(self, graph: ResourceGraph) -> RunResult:
        """
        Create every resource not yet created.

        Configuration errors (unresolved references, cycles) are raised before
        any provider is called. A failed resource does not stop independent
        branches, but everything that depends on it is marked failed without
        being attempted. Resources the blueprint no longer declares are skipped.
        """
        graph.validate()
        dependencies = dependency_map(graph)
        sorter = prepared_sorter(dependencies)

        started = time.monotonic()
        collector = ResultCollector("create")
        # failed identifier -> identifier of the resource whose failure caused it
        failed: dict[str, str] = {}

        def schedule(resource: Resource) -> bool:
            if resource.status == Status.CREATED:
                logger.info("resource_skipped", resource=resource.id, reason="already created")
                collector.record_skipped(resource.id)
                return False
            if resource.runtime.get(UNDECLARED):
                logger.info("resource_skipped", resource=resource.id, reason="no longer declared")
                collector.record_skipped(resource.id)
                return False

            blocking = sorted(d for d in dependencies[resource.id] if d in failed)
            if blocking:
                dep = blocking[0]
                root = failed[dep]
                cause = f"dependency {dep} failed"
                if root != dep:
                    cause = f"{cause} (caused by {root})"
                self._mark(graph, resource, Status.FAILED, cause)
                logger.warning("resource_not_attempted", resource=resource.id, cause=cause)
                failed[resource.id] = root
                collector.record_error(resource.id, cause)
                return False
            return True

        def finished(resource: Resource, error: BaseException | None) -> None:
            if error is None:
                collector.record_created(resource.id)
            else:
                failed[resource.id] = resource.id
                collector.record_error(resource.id, error)

        self._run(graph, sorter, schedule, self._create_one, finished)
        return collector.finalize(time.monotonic() - started)

    def _create_one(self, graph: ResourceGraph, resource: Resource) -> BaseException | None:
        log = logger.bind(resource=resource.id)
        provider = self._registry.create(resource, graph, self._context)

        if resource.status in INTERRUPTED:
            # Left behind by an interrupted run
            self._mark(graph, resource, Status.FAILED, INTERRUPTED[resource.status])
        elif resource.status == Status.DESTROYED:
            resource.status = Status.PENDING_CREATION
        resource.runtime.pop(OWNED, None)
        self._mark(graph, resource, Status.CREATING)
        log.info("resource_creating")

        try:
            provider.create()
        except AlreadyExistsError as e:
            # Objects under this identifier predate the run; destroy leaves them alone
            log.error("resource_already_exists", error=e.message, ids=e.details.get("ids"))
            resource.runtime[OWNED] = False
            self._mark(graph, resource, Status.FAILED, e.message)
            return e
        except StackyardError as e:
            log.error("resource_create_failed", error=e.message, error_type=type(e).__name__)
            self._mark(graph, resource, Status.FAILED, e.message)
            return e
        except Exception as e:
            self._mark(graph, resource, Status.FAILED, str(e))
            raise

        self._mark(graph, resource, Status.CREATED)
        log.info("resource_created")
        return None

    # === Destruction ===

    def destroy(self, graph: ResourceGraph) -> RunResult:
        """
        Tear down every resource, dependents first.

        Teardown is best effort: a failed destroy is recorded on the resource,
        which stays in the persisted graph for a later retry, and the pass
        continues with the remaining resources. Resources destroyed
        successfully are removed from the graph; once it is empty the state
        file is deleted. Resources whose creation found objects already using
        their identifier are dropped from the graph without touching them.
        """
        sorter = prepared_sorter(reverse_map(dependency_map(graph, strict=False)))

        started = time.monotonic()
        collector = ResultCollector("destroy")

        def finished(resource: Resource, error: BaseException | None) -> None:
            if error is None and resource.runtime.get(OWNED) is False:
                collector.record_skipped(resource.id)
            elif error is None:
                collector.record_destroyed(resource.id)
            else:
                collector.record_error(resource.id, error)

        self._run(graph, sorter, lambda _: True, self._destroy_one, finished)

        with self._state_lock:
            if len(graph) == 0:
                remove_state(self._state_path)
                logger.info("state_removed", path=str(self._state_path))
            else:
                save_state(graph, self._state_path)
        return collector.finalize(time.monotonic() - started)

    def _destroy_one(self, graph: ResourceGraph, resource: Resource) -> BaseException | None:
        log = logger.bind(resource=resource.id)
        provider = self._registry.create(resource, graph, self._context)

        if resource.status not in (Status.PENDING_DESTROY, Status.DESTROYED):
            if resource.status == Status.CREATING:
                self._mark(graph, resource, Status.FAILED, INTERRUPTED[Status.CREATING])
            self._mark(graph, resource, Status.PENDING_DESTROY)

        if resource.runtime.get(OWNED) is False:
            log.warning("resource_not_owned", error=resource.error)
        else:
            log.info("resource_destroying")
            try:
                provider.destroy()
            except StackyardError as e:
                # Best effort: keep the resource so the next destroy retries it
                log.error("resource_destroy_failed", error=e.message, error_type=type(e).__name__)
                self._mark(graph, resource, Status.FAILED, e.message)
                return e

        with self._state_lock:
            if resource.status != Status.DESTROYED:
                resource.set_status(Status.DESTROYED)
            graph.remove_resource(resource.id)
            if len(graph):
                save_state(graph, self._state_path)
        log.info("resource_destroyed")
        return None

    # === Shared ===

    def _mark(
        self,
        graph: ResourceGraph,
        resource: Resource,
        status: Status,
        error: str | None = None,
    ) -> None:
        with self._state_lock:
            resource.set_status(status, error)
            save_state(graph, self._state_path)

    def _run(
        self,
        graph: ResourceGraph,
        sorter: TopologicalSorter[str],
        schedule: Callable[[Resource], bool],
        action: Callable[[ResourceGraph, Resource], BaseException | None],
        finished: Callable[[Resource, BaseException | None], None],
    ) -> None:
        """Feed ready resources to ``action`` until the sorter is exhausted.

        ``schedule`` decides whether a ready resource needs ``action`` at all;
        resources it declines are marked done immediately.
        """
        position = {r.id: i for i, r in enumerate(graph)}
        pending: dict[Future, Resource] = {}

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="stackyard"
        ) as pool:
            while sorter.is_active():
                ready = sorted(sorter.get_ready(), key=lambda i: position[i])
                for identifier in ready:
                    resource = graph.find_by_identifier(identifier)
                    if schedule(resource):
                        pending[pool.submit(action, graph, resource)] = resource
                    else:
                        sorter.done(identifier)

                if not pending:
                    continue
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: position[pending[f].id]):
                    resource = pending.pop(future)
                    finished(resource, future.result())
                    sorter.done(resource.id)
