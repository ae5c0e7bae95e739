"""
Resource models.

Every resource is identified by ``<type>.<name>`` and carries its lifecycle
status, its dependency references, the type-specific configuration declared
in the blueprint and the runtime fields providers derive while creating it
(container ids, assigned ports, ...).
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResourceType(str, Enum):
    """Resource types a blueprint can declare."""

    NETWORK = "network"
    CONTAINER = "container"
    K8S_CLUSTER = "k8s_cluster"
    NOMAD_CLUSTER = "nomad_cluster"
    HELM = "helm"


class Status(str, Enum):
    """Lifecycle status of a resource."""

    PENDING_CREATION = "pending_creation"
    CREATING = "creating"
    CREATED = "created"
    PENDING_DESTROY = "pending_destroy"
    DESTROYED = "destroyed"
    FAILED = "failed"


# Failed -> Creating is an explicit re-run of a previously failed creation.
ALLOWED_TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.PENDING_CREATION: frozenset(
        {Status.CREATING, Status.FAILED, Status.PENDING_DESTROY}
    ),
    Status.CREATING: frozenset({Status.CREATED, Status.FAILED}),
    Status.CREATED: frozenset({Status.PENDING_DESTROY}),
    Status.PENDING_DESTROY: frozenset({Status.DESTROYED, Status.FAILED}),
    Status.FAILED: frozenset({Status.CREATING, Status.FAILED, Status.PENDING_DESTROY}),
    Status.DESTROYED: frozenset(),
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | int | float) -> float:
    """Parse a duration such as ``"60s"``, ``"1m30s"`` or ``"500ms"`` into seconds.

    Bare numbers are taken as seconds.
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            seconds = 0.0
            position = 0
            for match in _DURATION_PART.finditer(text):
                if match.start() != position:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                position = match.end()
            if position != len(text) or not text:
                raise ValueError(f"invalid duration: {value!r}") from None
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {value!r}")
    return seconds


def split_reference(reference: str) -> tuple[ResourceType, str]:
    """Split a dependency reference ``"<type>.<name>"`` into its parts."""
    rtype, sep, name = reference.partition(".")
    if not sep or not name:
        raise ValueError(f"invalid resource reference {reference!r}, expected '<type>.<name>'")
    try:
        return ResourceType(rtype), name
    except ValueError:
        raise ValueError(f"unknown resource type {rtype!r} in reference {reference!r}") from None


class Image(BaseModel):
    name: str
    username: str | None = None
    password: str | None = None


class Port(BaseModel):
    local: int
    host: int | None = None
    protocol: Literal["tcp", "udp"] = "tcp"


class Volume(BaseModel):
    source: str
    destination: str
    type: Literal["bind", "volume"] = "bind"


class NetworkAttachment(BaseModel):
    """Attachment of a container or cluster to a declared network."""

    name: str
    ip_address: str | None = None

    @property
    def network_name(self) -> str:
        return split_reference(self.name)[1]


class HealthCheck(BaseModel):
    timeout: str = "30s"
    http: str | None = None
    pods: list[str] = Field(default_factory=list)

    @field_validator("timeout")
    @classmethod
    def _valid_timeout(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def timeout_seconds(self) -> float:
        return parse_duration(self.timeout)


class ResourceInfo(BaseModel):
    """Identity and status snapshot of a resource."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ResourceType
    status: Status


class Resource(BaseModel):
    """Base class for all resource variants."""

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[ResourceType]

    # Fields owned by the engine rather than the blueprint
    ENGINE_FIELDS: ClassVar[frozenset[str]] = frozenset({"name", "status", "error", "runtime"})

    name: str
    status: Status = Status.PENDING_CREATION
    depends_on: list[str] = Field(default_factory=list)
    error: str | None = None
    runtime: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("resource name must not be empty")
        return value

    @field_validator("depends_on")
    @classmethod
    def _valid_references(cls, value: list[str]) -> list[str]:
        for reference in value:
            split_reference(reference)
        return value

    @property
    def type(self) -> ResourceType:
        return self.resource_type

    @property
    def id(self) -> str:
        return f"{self.resource_type.value}.{self.name}"

    @property
    def info(self) -> ResourceInfo:
        return ResourceInfo(name=self.name, type=self.resource_type, status=self.status)

    def references(self) -> list[tuple[str, ResourceType | None]]:
        """Return every dependency reference with the resource type it must resolve to.

        ``None`` means any type is accepted.
        """
        refs: list[tuple[str, ResourceType | None]] = [(ref, None) for ref in self.depends_on]
        refs.extend(self._implicit_references())
        return refs

    def _implicit_references(self) -> list[tuple[str, ResourceType | None]]:
        return []

    def set_status(self, status: Status, error: str | None = None) -> None:
        """Move the resource to a new lifecycle status."""
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(
                f"invalid status transition for {self.id}: "
                f"{self.status.value} -> {status.value}"
            )
        self.status = status
        self.error = error

    def config(self) -> dict[str, Any]:
        """Return the blueprint configuration of the resource."""
        return self.model_dump(mode="json", exclude=set(self.ENGINE_FIELDS))

    def to_state(self) -> dict[str, Any]:
        """Serialize to the persisted state representation."""
        return {
            "type": self.resource_type.value,
            "name": self.name,
            "status": self.status.value,
            "error": self.error,
            "config": self.config(),
            "runtime": dict(self.runtime),
        }


class _NetworkAttached(Resource):
    network: NetworkAttachment | None = None

    @field_validator("network", mode="before")
    @classmethod
    def _network_from_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"name": value}
        return value

    @field_validator("network")
    @classmethod
    def _network_reference(cls, value: NetworkAttachment | None) -> NetworkAttachment | None:
        if value is not None and split_reference(value.name)[0] != ResourceType.NETWORK:
            raise ValueError(f"network attachment {value.name!r} must reference a network")
        return value

    def _implicit_references(self) -> list[tuple[str, ResourceType | None]]:
        if self.network is None:
            return []
        return [(self.network.name, ResourceType.NETWORK)]

    @property
    def network_name(self) -> str | None:
        return self.network.network_name if self.network else None


def _image_from_string(value: Any) -> Any:
    if isinstance(value, str):
        return {"name": value}
    return value


class Network(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.NETWORK

    subnet: str = "10.5.0.0/16"


class Container(_NetworkAttached):
    resource_type: ClassVar[ResourceType] = ResourceType.CONTAINER

    image: Image
    command: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    ports: list[Port] = Field(default_factory=list)
    volumes: list[Volume] = Field(default_factory=list)
    privileged: bool = False
    health_check: HealthCheck | None = None

    @field_validator("image", mode="before")
    @classmethod
    def _image(cls, value: Any) -> Any:
        return _image_from_string(value)


class _Cluster(_NetworkAttached):
    version: str
    images: list[Image] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)

    @field_validator("images", mode="before")
    @classmethod
    def _images_from_strings(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_image_from_string(item) for item in value]
        return value


class K8sCluster(_Cluster):
    resource_type: ClassVar[ResourceType] = ResourceType.K8S_CLUSTER

    driver: Literal["k3s"] = "k3s"
    version: str = "v1.27.4-k3s1"


class NomadCluster(_Cluster):
    resource_type: ClassVar[ResourceType] = ResourceType.NOMAD_CLUSTER

    version: str = "v1.6.1"
    nodes: int = Field(default=1, ge=1)


class Helm(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.HELM

    cluster: str
    chart: str
    values: str | None = None
    namespace: str = "default"
    health_check: HealthCheck | None = None

    @field_validator("cluster")
    @classmethod
    def _cluster_reference(cls, value: str) -> str:
        split_reference(value)
        return value

    def _implicit_references(self) -> list[tuple[str, ResourceType | None]]:
        return [(self.cluster, ResourceType.K8S_CLUSTER)]

    @property
    def cluster_name(self) -> str:
        return split_reference(self.cluster)[1]


RESOURCE_MODELS: dict[ResourceType, type[Resource]] = {
    ResourceType.NETWORK: Network,
    ResourceType.CONTAINER: Container,
    ResourceType.K8S_CLUSTER: K8sCluster,
    ResourceType.NOMAD_CLUSTER: NomadCluster,
    ResourceType.HELM: Helm,
}


def build_resource(rtype: ResourceType | str, name: str, config: dict[str, Any]) -> Resource:
    """Build a resource variant from its blueprint configuration."""
    model = RESOURCE_MODELS[ResourceType(rtype)]
    return model.model_validate({**config, "name": name})


def resource_from_state(data: dict[str, Any]) -> Resource:
    """Rebuild a resource from its persisted state representation."""
    model = RESOURCE_MODELS[ResourceType(data["type"])]
    return model.model_validate(
        {
            **data.get("config", {}),
            "name": data["name"],
            "status": data.get("status", Status.PENDING_CREATION.value),
            "error": data.get("error"),
            "runtime": data.get("runtime", {}),
        }
    )
