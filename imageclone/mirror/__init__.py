from ._filter import (
    REGISTRY_NAMESPACE,
    SYSTEM_NAMESPACES,
    NamespaceFilter,
    eligible,
)
from ._models import (
    ContainerRewrite,
    ReconcileResult,
    ReconcileStatus,
    RewriteOutcome,
    RewriteResult,
)
from ._queue import ShutDownError, WorkQueue
from ._template import PodTemplateReconciler
from ._workload import FAILED_COPYING_IMAGES, WorkloadReconciler
from .controller import Controller

__all__ = [
    "FAILED_COPYING_IMAGES",
    "REGISTRY_NAMESPACE",
    "SYSTEM_NAMESPACES",
    "ContainerRewrite",
    "Controller",
    "NamespaceFilter",
    "PodTemplateReconciler",
    "ReconcileResult",
    "ReconcileStatus",
    "RewriteOutcome",
    "RewriteResult",
    "ShutDownError",
    "WorkQueue",
    "WorkloadReconciler",
    "eligible",
]
