"""
Resource graph.

Holds the declared resources keyed by identifier, in declaration order, and
resolves the dependency references between them.
"""

from __future__ import annotations

from collections.abc import Iterator

from stackyard.core.errors import (
    DependencyUnresolvedError,
    DuplicateResourceError,
    ResourceNotFoundError,
)
from stackyard.resources.models import Resource, ResourceType, split_reference


class ResourceGraph:
    """Set of resources and the dependency references between them."""

    def __init__(self, resources: list[Resource] | None = None) -> None:
        self._resources: dict[str, Resource] = {}
        for resource in resources or []:
            self.add_resource(resource)

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._resources

    @property
    def resources(self) -> list[Resource]:
        """All resources in declaration order."""
        return list(self._resources.values())

    def add_resource(self, resource: Resource) -> None:
        """Add a resource, rejecting duplicate identifiers."""
        if resource.id in self._resources:
            raise DuplicateResourceError(
                f"resource {resource.id} is already declared",
                {"resource": resource.id},
            )
        self._resources[resource.id] = resource

    def remove_resource(self, identifier: str) -> Resource:
        """Remove a resource from the graph and return it."""
        try:
            return self._resources.pop(identifier)
        except KeyError:
            raise ResourceNotFoundError(
                f"resource {identifier} not found", {"resource": identifier}
            ) from None

    def find_by_type(self, rtype: ResourceType | str) -> list[Resource]:
        """Return resources of a type in declaration order."""
        rtype = ResourceType(rtype)
        return [r for r in self._resources.values() if r.resource_type == rtype]

    def find_by_identifier(self, identifier: str) -> Resource:
        """Return the resource with the identifier ``<type>.<name>``."""
        resource = self._resources.get(identifier)
        if resource is None:
            raise ResourceNotFoundError(
                f"resource {identifier} not found", {"resource": identifier}
            )
        return resource

    def get(self, identifier: str) -> Resource | None:
        return self._resources.get(identifier)

    def find_dependent_resource(
        self,
        reference: str,
        expected_type: ResourceType | None = None,
        *,
        referrer: str | None = None,
    ) -> Resource:
        """Resolve a dependency reference to its target resource.

        Raises:
            DependencyUnresolvedError: the reference is malformed, does not
                resolve, or resolves to a resource of an unexpected type
        """
        try:
            rtype, _ = split_reference(reference)
        except ValueError as e:
            raise DependencyUnresolvedError(reference, str(e), referrer) from None

        if expected_type is not None and rtype != expected_type:
            raise DependencyUnresolvedError(
                reference,
                f"reference {reference} must point at a {expected_type.value} resource",
                referrer,
            )

        target = self._resources.get(reference)
        if target is None:
            source = f"{referrer} depends on " if referrer else ""
            raise DependencyUnresolvedError(
                reference,
                f"{source}{reference} which is not declared",
                referrer,
            )
        return target

    def dependencies(self, resource: Resource) -> list[Resource]:
        """Return the resolved direct dependencies of a resource."""
        resolved: dict[str, Resource] = {}
        for reference, expected in resource.references():
            target = self.find_dependent_resource(reference, expected, referrer=resource.id)
            resolved[target.id] = target
        return list(resolved.values())

    def dependency_ids(self, resource: Resource, *, strict: bool = True) -> set[str]:
        """Return identifiers of a resource's direct dependencies.

        With ``strict=False`` references to resources missing from the graph
        are ignored, which is what a teardown of partially destroyed state needs.
        """
        if strict:
            return {dep.id for dep in self.dependencies(resource)}
        return {ref for ref, _ in resource.references() if ref in self._resources}

    def dependents(self, identifier: str) -> list[Resource]:
        """Return every resource that transitively depends on ``identifier``."""
        found: dict[str, Resource] = {}
        frontier = [identifier]
        while frontier:
            current = frontier.pop()
            for resource in self._resources.values():
                if resource.id in found:
                    continue
                if current in {ref for ref, _ in resource.references()}:
                    found[resource.id] = resource
                    frontier.append(resource.id)
        return [r for r in self._resources.values() if r.id in found]

    def validate(self) -> None:
        """Check that every dependency reference resolves to the expected type."""
        for resource in self._resources.values():
            self.dependencies(resource)
