from ._models import (
    ClusterEvent,
    Container,
    DaemonSet,
    Deployment,
    EventType,
    PodTemplate,
    WatchEvent,
    Workload,
    WorkloadKey,
    WorkloadKind,
    WorkloadList,
)
from .component import Kubernetes

__all__ = [
    "ClusterEvent",
    "Container",
    "DaemonSet",
    "Deployment",
    "EventType",
    "Kubernetes",
    "PodTemplate",
    "WatchEvent",
    "Workload",
    "WorkloadKey",
    "WorkloadKind",
    "WorkloadList",
]
