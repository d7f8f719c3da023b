from __future__ import annotations

from typing import Iterable

from pydantic import ConfigDict

from imageclone.core import DataModel

REGISTRY_NAMESPACE = "registry"

SYSTEM_NAMESPACES = frozenset(
    {
        "kube-system",
        "local-path-storage",  # kind system component
    }
)


def eligible(
    workload_namespace: str,
    ignored: Iterable[str],
    self_namespace: str | None = None,
) -> bool:
    """Whether workloads in ``workload_namespace`` may be reconciled."""
    if self_namespace and workload_namespace == self_namespace:
        return False
    return workload_namespace not in ignored


class NamespaceFilter(DataModel):
    """Namespaces whose workloads are never touched.

    Built once at startup and shared read-only by all workers.
    """

    model_config = ConfigDict(frozen=True)

    ignored: frozenset[str]
    self_namespace: str | None = None

    @classmethod
    def create(
        cls,
        self_namespace: str | None = None,
        registry_namespace: str = REGISTRY_NAMESPACE,
        extra: Iterable[str] = (),
    ) -> NamespaceFilter:
        ignored = SYSTEM_NAMESPACES | {registry_namespace} | set(extra)
        if self_namespace:
            ignored = ignored | {self_namespace}
        return cls(ignored=frozenset(ignored), self_namespace=self_namespace)

    def eligible(self, namespace: str) -> bool:
        return eligible(namespace, self.ignored, self.self_namespace)
