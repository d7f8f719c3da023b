from typing import Any

from imageclone.compute.container_registry import ContainerRegistry
from imageclone.compute.kubernetes import (
    Container,
    DaemonSet,
    Deployment,
    Kubernetes,
    PodTemplate,
    Workload,
)
from imageclone.image import Registry
from imageclone.mirror import WorkloadReconciler

BACKUP = Registry(authority="10.96.0.11:5001")


def mirrored(image: str) -> str:
    return f"10.96.0.11:5001/index_docker_io/library/{image}"


def deployment(
    *images: str,
    namespace: str = "default",
    name: str = "web",
    init_images: tuple[str, ...] = (),
) -> Deployment:
    return Deployment(
        namespace=namespace,
        name=name,
        template=PodTemplate(
            containers=[
                Container(name=f"c{i}", image=image)
                for i, image in enumerate(images)
            ],
            init_containers=[
                Container(name=f"init{i}", image=image)
                for i, image in enumerate(init_images)
            ],
        ),
    )


def daemon_set(*images: str, namespace: str = "default", name: str = "agent"):
    return DaemonSet(
        namespace=namespace,
        name=name,
        template=PodTemplate(
            containers=[
                Container(name=f"c{i}", image=image)
                for i, image in enumerate(images)
            ],
        ),
    )


class Fixture:
    def __init__(
        self,
        workloads: list[Workload],
        failures: list[str] | None = None,
    ):
        self.kubernetes = Kubernetes(
            __provider__=dict(
                type="memory", parameters=dict(workloads=workloads)
            )
        )
        self.container_registry = ContainerRegistry(
            __provider__=dict(
                type="memory", parameters=dict(failures=failures or [])
            )
        )
        self.reconciler = WorkloadReconciler(
            kubernetes=self.kubernetes,
            container_registry=self.container_registry,
            backup_registry=BACKUP,
        )

    @property
    def store(self) -> Any:
        return self.kubernetes.__provider__

    @property
    def registry(self) -> Any:
        return self.container_registry.__provider__

    async def reconcile(self, key, async_call: bool, context=None):
        if async_call:
            return await self.reconciler.areconcile(key, context)
        return self.reconciler.reconcile(key, context)
