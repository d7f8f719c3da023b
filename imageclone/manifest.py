from __future__ import annotations

import os
from typing import Any

from pydantic import Field, field_validator

from imageclone.compute.container_registry import ContainerRegistry
from imageclone.compute.kubernetes import Kubernetes
from imageclone.core import DataModel, YamlLoader
from imageclone.image import Registry, parse_registry
from imageclone.mirror import (
    REGISTRY_NAMESPACE,
    Controller,
    NamespaceFilter,
    WorkloadReconciler,
    WorkQueue,
)

__all__ = [
    "MANIFEST_FILE",
    "MirrorManifest",
    "ProviderConfig",
]

MANIFEST_FILE = "imageclone.yaml"
POD_NAMESPACE_ENV = "POD_NAMESPACE"


class ProviderConfig(DataModel):
    type: str = "default"
    parameters: dict[str, Any] = dict()

    def to_provider(self) -> dict[str, Any]:
        # parameters are passed as given, not serialized
        return dict(type=self.type, parameters=dict(self.parameters))


class MirrorManifest(DataModel):
    """Controller configuration.

    Attributes:
        backup_registry: Registry receiving the mirrored images (host[:port]).
        pod_namespace: Namespace the controller runs in. Read from the
            POD_NAMESPACE environment variable when unset.
        registry_namespace: Namespace hosting the backup registry.
        ignored_namespaces: Additional namespaces to leave alone.
        workers: Number of concurrent reconciliation workers.
        base_retry_delay: First retry delay of a failed workload, seconds.
        max_retry_delay: Retry delay cap, seconds.
        kubernetes: Kubernetes provider config.
        container_registry: Image transfer provider config.
    """

    backup_registry: str
    pod_namespace: str | None = Field(
        default_factory=lambda: os.environ.get(POD_NAMESPACE_ENV) or None
    )
    registry_namespace: str = REGISTRY_NAMESPACE
    ignored_namespaces: list[str] = list()
    workers: int = 1
    base_retry_delay: float = 0.005
    max_retry_delay: float = 1000.0
    kubernetes: ProviderConfig = ProviderConfig()
    container_registry: ProviderConfig = ProviderConfig()

    @field_validator("backup_registry")
    @classmethod
    def _check_backup_registry(cls, value: str) -> str:
        return parse_registry(value).authority

    @staticmethod
    def parse(path: str, **overrides: Any) -> MirrorManifest:
        """Load a manifest file and apply overrides that are not None."""
        obj = YamlLoader.load(path=path) if os.path.exists(path) else {}
        obj.update({k: v for k, v in overrides.items() if v is not None})
        return MirrorManifest.from_dict(obj)

    def registry(self) -> Registry:
        return parse_registry(self.backup_registry)

    def namespace_filter(self) -> NamespaceFilter:
        return NamespaceFilter.create(
            self_namespace=self.pod_namespace,
            registry_namespace=self.registry_namespace,
            extra=self.ignored_namespaces,
        )

    def build_kubernetes(self) -> Kubernetes:
        return Kubernetes(__provider__=self.kubernetes.to_provider())

    def build_container_registry(self) -> ContainerRegistry:
        return ContainerRegistry(
            __provider__=self.container_registry.to_provider()
        )

    def build_reconciler(
        self,
        kubernetes: Kubernetes | None = None,
        container_registry: ContainerRegistry | None = None,
    ) -> WorkloadReconciler:
        return WorkloadReconciler(
            kubernetes=kubernetes or self.build_kubernetes(),
            container_registry=container_registry
            or self.build_container_registry(),
            backup_registry=self.registry(),
        )

    def build_controller(
        self,
        kubernetes: Kubernetes | None = None,
        container_registry: ContainerRegistry | None = None,
    ) -> Controller:
        kubernetes = kubernetes or self.build_kubernetes()
        return Controller(
            reconciler=self.build_reconciler(kubernetes, container_registry),
            kubernetes=kubernetes,
            namespace_filter=self.namespace_filter(),
            workers=self.workers,
            queue=WorkQueue(
                base_delay=self.base_retry_delay,
                max_delay=self.max_retry_delay,
            ),
        )
