"""
Persisted state.

The state file is a JSON document holding a complete snapshot of the resource
graph. Writes go to a temporary file in the same directory which then
atomically replaces the previous snapshot, so a crash never leaves a
truncated state file behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from stackyard.core.errors import DuplicateResourceError, StateError, StateNotFoundError
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Status, resource_from_state

logger = structlog.get_logger()

STATE_VERSION = 1

# Runtime flag on persisted resources the blueprint no longer declares
UNDECLARED = "undeclared"


def graph_to_state(graph: ResourceGraph) -> dict[str, Any]:
    return {
        "version": STATE_VERSION,
        "resources": [resource.to_state() for resource in graph],
    }


def graph_from_state(data: dict[str, Any]) -> ResourceGraph:
    version = data.get("version", STATE_VERSION)
    if version != STATE_VERSION:
        raise StateError(f"unsupported state version {version}", {"version": version})
    graph = ResourceGraph()
    for item in data.get("resources", []):
        try:
            graph.add_resource(resource_from_state(item))
        except (KeyError, ValueError, ValidationError, DuplicateResourceError) as e:
            raise StateError(f"invalid resource in state: {e}") from e
    return graph


def load_state(path: Path) -> ResourceGraph:
    """Load the resource graph persisted at ``path``.

    Raises:
        StateNotFoundError: no state file exists (no environment is running)
        StateError: the file can not be read or parsed
    """
    if not path.exists():
        raise StateNotFoundError("no environment is running", {"path": str(path)})
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise StateError(f"unable to read state file: {e}", {"path": str(path)}) from e
    if not isinstance(data, dict):
        raise StateError("state file must contain a JSON object", {"path": str(path)})
    return graph_from_state(data)


def save_state(graph: ResourceGraph, path: Path) -> None:
    """Atomically replace the state file at ``path`` with a snapshot of ``graph``."""
    payload = json.dumps(graph_to_state(graph), indent=2, sort_keys=True) + "\n"
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise StateError(f"unable to write state file: {e}", {"path": str(path)}) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    logger.debug("state_saved", path=str(path), resources=len(graph))


def remove_state(path: Path) -> None:
    """Delete the state file if present."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise StateError(f"unable to remove state file: {e}", {"path": str(path)}) from e


def merge_state(declared: ResourceGraph, persisted: ResourceGraph) -> ResourceGraph:
    """
    Combine a freshly loaded blueprint with the graph of a previous run.

    Resources already created keep their persisted record. Other declared
    resources take the blueprint's configuration but carry over the persisted
    status, error and runtime fields. Persisted resources the blueprint no
    longer declares stay in the graph so a later destroy still removes them,
    flagged with ``runtime["undeclared"]`` so a run leaves them alone.
    """
    merged = ResourceGraph()
    for resource in declared:
        previous = persisted.get(resource.id)
        if previous is None:
            merged.add_resource(resource)
        elif previous.status == Status.CREATED:
            previous.runtime.pop(UNDECLARED, None)
            merged.add_resource(previous)
        else:
            resource.status = previous.status
            resource.error = previous.error
            resource.runtime = {k: v for k, v in previous.runtime.items() if k != UNDECLARED}
            merged.add_resource(resource)
    for resource in persisted:
        if resource.id not in merged:
            resource.runtime[UNDECLARED] = True
            merged.add_resource(resource)
    return merged
