from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

from pydantic import ConfigDict

from imageclone.core import DataModel


class WorkloadKind(str, Enum):
    DEPLOYMENT = "Deployment"
    DAEMON_SET = "DaemonSet"


class EventType(str, Enum):
    NORMAL = "Normal"
    WARNING = "Warning"


class WorkloadKey(DataModel):
    """Identity of a workload."""

    model_config = ConfigDict(frozen=True)

    kind: WorkloadKind
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.kind.value} {self.namespace}/{self.name}"


class Container(DataModel):
    name: str
    image: str = ""


class PodTemplate(DataModel):
    """Containers of a pod template, in declaration order."""

    containers: list[Container] = []
    init_containers: list[Container] = []

    @staticmethod
    def from_manifest(template: dict[str, Any] | None) -> PodTemplate:
        spec = (template or {}).get("spec") or {}

        def containers(key: str) -> list[Container]:
            return [
                Container(name=c.get("name", ""), image=c.get("image") or "")
                for c in spec.get(key) or []
            ]

        return PodTemplate(
            containers=containers("containers"),
            init_containers=containers("initContainers"),
        )


class Workload(DataModel):
    """Object owning a single pod template.

    Attributes:
        namespace: Namespace of the object.
        name: Name of the object.
        uid: Object uid.
        resource_version: Version the object had when it was read.
        generation: Spec generation.
        template: Pod template.
    """

    kind: ClassVar[WorkloadKind]
    api_kind: ClassVar[str]
    api_version: ClassVar[str] = "apps/v1"

    namespace: str
    name: str
    uid: str | None = None
    resource_version: str | None = None
    generation: int | None = None
    template: PodTemplate = PodTemplate()

    @property
    def key(self) -> WorkloadKey:
        return WorkloadKey(
            kind=self.kind, namespace=self.namespace, name=self.name
        )

    def get_pod_template(self) -> PodTemplate:
        return self.template

    def build_patch(self, before: Workload) -> dict[str, Any]:
        """Build the strategic merge patch turning ``before`` into self.

        Only changed containers are listed, merged by name. The resource
        version of ``before`` is included so the server rejects the patch
        when the object changed after it was read.
        """
        pod_spec: dict[str, Any] = {}
        for field, key in (
            ("containers", "containers"),
            ("init_containers", "initContainers"),
        ):
            old = {c.name: c.image for c in getattr(before.template, field)}
            changed = [
                {"name": c.name, "image": c.image}
                for c in getattr(self.template, field)
                if old.get(c.name) != c.image
            ]
            if changed:
                pod_spec[key] = changed
        patch: dict[str, Any] = {"spec": {"template": {"spec": pod_spec}}}
        if before.resource_version is not None:
            patch["metadata"] = {"resourceVersion": before.resource_version}
        return patch

    @classmethod
    def from_manifest(cls, obj: dict[str, Any]) -> Workload:
        if cls is Workload:
            cls = Workload.for_kind(obj.get("kind", ""))
        metadata = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        return cls(
            namespace=metadata.get("namespace") or "default",
            name=metadata.get("name", ""),
            uid=metadata.get("uid"),
            resource_version=metadata.get("resourceVersion"),
            generation=metadata.get("generation"),
            template=PodTemplate.from_manifest(spec.get("template")),
        )

    @staticmethod
    def for_kind(kind: WorkloadKind | str) -> type[Workload]:
        return WORKLOAD_TYPES[WorkloadKind(kind)]


class Deployment(Workload):
    kind: ClassVar[WorkloadKind] = WorkloadKind.DEPLOYMENT
    api_kind: ClassVar[str] = "deployment"


class DaemonSet(Workload):
    kind: ClassVar[WorkloadKind] = WorkloadKind.DAEMON_SET
    api_kind: ClassVar[str] = "daemon_set"


WORKLOAD_TYPES: dict[WorkloadKind, type[Workload]] = {
    WorkloadKind.DEPLOYMENT: Deployment,
    WorkloadKind.DAEMON_SET: DaemonSet,
}


class WorkloadList(DataModel):
    items: list[Workload] = []
    resource_version: str | None = None


class WatchEvent(DataModel):
    type: str
    workload: Workload


class ClusterEvent(DataModel):
    """Event recorded against a workload.

    Attributes:
        key: Workload the event refers to.
        type: Event severity.
        reason: Short machine readable reason.
        message: Human readable message.
        timestamp: Seconds since epoch.
    """

    key: WorkloadKey
    type: EventType
    reason: str
    message: str
    timestamp: float
