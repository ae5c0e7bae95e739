"""
Blueprint loader.

A blueprint is a YAML document whose top-level keys are resource types, each
mapping resource names to their configuration::

    network:
      test:
        subnet: 10.0.0.0/24

    container:
      testing:
        network: network.test
        image: consul

A blueprint path may be a single file or a directory, in which case every
``*.yaml``/``*.yml`` file in it is loaded in sorted order into one graph.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from stackyard.core.errors import BlueprintError
from stackyard.resources.graph import ResourceGraph
from stackyard.resources.models import Container, Helm, Resource, ResourceType, build_resource

logger = structlog.get_logger()

BLUEPRINT_SUFFIXES = (".yaml", ".yml")


def blueprint_files(path: str | Path) -> list[Path]:
    """Return the blueprint files found at ``path``."""
    path = Path(path)
    if not path.exists():
        raise BlueprintError(f"Blueprint not found: {path}", {"path": str(path)})
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.suffix in BLUEPRINT_SUFFIXES)
        if not files:
            raise BlueprintError(f"No blueprint files in {path}", {"path": str(path)})
        return files
    return [path]


def load_blueprint(path: str | Path) -> ResourceGraph:
    """Parse the blueprint at ``path`` into a resource graph.

    Every resource starts in ``pending_creation``. The returned graph has
    been validated: all dependency references resolve to the expected type.

    Raises:
        BlueprintError: invalid YAML, unknown resource type or configuration
        DuplicateResourceError: a resource is declared twice
        DependencyUnresolvedError: a dependency reference does not resolve
    """
    graph = ResourceGraph()
    for file in blueprint_files(path):
        parse_blueprint(file.read_text(), graph, source=str(file), base_dir=file.parent)
    graph.validate()
    logger.info("blueprint_loaded", path=str(path), resources=len(graph))
    return graph


def parse_blueprint(
    text: str,
    graph: ResourceGraph | None = None,
    *,
    source: str = "<string>",
    base_dir: Path | None = None,
) -> ResourceGraph:
    """Parse blueprint YAML text, adding its resources to ``graph``.

    With ``base_dir`` set, relative helm values files and bind mount sources
    are resolved against it.
    """
    graph = graph if graph is not None else ResourceGraph()
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise BlueprintError(f"Invalid YAML in {source}: {e}", {"path": source}) from e

    if not isinstance(data, dict):
        raise BlueprintError(f"Expected YAML object in {source}", {"path": source})

    for type_name, declarations in data.items():
        try:
            rtype = ResourceType(type_name)
        except ValueError:
            raise BlueprintError(
                f"Unknown resource type {type_name!r} in {source}",
                {"path": source, "type": type_name},
            ) from None

        if not isinstance(declarations, dict):
            raise BlueprintError(
                f"Expected a mapping of {type_name} names in {source}",
                {"path": source, "type": type_name},
            )

        for name, config in declarations.items():
            resource = _build(rtype, str(name), config or {}, source)
            if base_dir is not None:
                _resolve_paths(resource, base_dir)
            graph.add_resource(resource)

    return graph


def _build(rtype: ResourceType, name: str, config: Any, source: str) -> Any:
    identifier = f"{rtype.value}.{name}"
    if not isinstance(config, dict):
        raise BlueprintError(
            f"Configuration of {identifier} must be a mapping",
            {"path": source, "resource": identifier},
        )
    forbidden = {"name", "status", "error", "runtime"} & config.keys()
    if forbidden:
        raise BlueprintError(
            f"{identifier} may not set {', '.join(sorted(forbidden))}",
            {"path": source, "resource": identifier},
        )
    try:
        return build_resource(rtype, name, config)
    except ValidationError as e:
        raise BlueprintError(
            f"Invalid configuration for {identifier}: {e}",
            {"path": source, "resource": identifier},
        ) from e


def _resolve(value: str, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if path.is_absolute():
        return str(path)
    return str((base_dir / path).resolve())


def _resolve_paths(resource: Resource, base_dir: Path) -> None:
    if isinstance(resource, Helm) and resource.values:
        resource.values = _resolve(resource.values, base_dir)
    elif isinstance(resource, Container):
        for volume in resource.volumes:
            if volume.type == "bind":
                volume.source = _resolve(volume.source, base_dir)
