"""
In memory object store.

Every write bumps the resource version; patches carrying a stale
``metadata.resourceVersion`` are rejected with a conflict, like the API
server does.
"""

from __future__ import annotations

__all__ = ["Memory"]

import time
from threading import Lock
from typing import Any, Iterator

from imageclone.core import Provider, Response
from imageclone.core.exceptions import ConflictError, NotFoundError

from .._models import (
    ClusterEvent,
    Container,
    EventType,
    WatchEvent,
    Workload,
    WorkloadKey,
    WorkloadKind,
    WorkloadList,
)


class Memory(Provider):
    events: list[ClusterEvent]
    patches: list[tuple[WorkloadKey, dict[str, Any]]]

    _objects: dict[WorkloadKey, Workload]
    _version: int
    _lock: Lock

    def __init__(
        self,
        workloads: list[Workload] | None = None,
        **kwargs,
    ):
        """Initialize.

        Args:
            workloads:
                Workloads the store starts with.
        """
        self.events = []
        self.patches = []
        self._objects = dict()
        self._version = 0
        self._lock = Lock()
        super().__init__(**kwargs)
        for workload in workloads or []:
            self.put_workload(workload)

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def put_workload(self, workload: Workload) -> Workload:
        """Create or replace a workload, as another actor would."""
        with self._lock:
            current = self._objects.get(workload.key)
            stored = workload.copy(
                deep=True,
                update=dict(
                    resource_version=self._next_version(),
                    generation=(current.generation or 0) + 1 if current else 1,
                    uid=current.uid if current else workload.uid,
                ),
            )
            self._objects[stored.key] = stored
            return stored.copy(deep=True)

    def delete_workload(self, key: WorkloadKey) -> None:
        with self._lock:
            if self._objects.pop(key, None) is None:
                raise NotFoundError(f"{key} not found")

    def get_workload(self, key: WorkloadKey) -> Response[Workload]:
        with self._lock:
            if key not in self._objects:
                raise NotFoundError(f"{key} not found")
            return Response(result=self._objects[key].copy(deep=True))

    def patch_workload(
        self,
        key: WorkloadKey,
        patch: dict[str, Any],
    ) -> Response[Workload]:
        with self._lock:
            if key not in self._objects:
                raise NotFoundError(f"{key} not found")
            current = self._objects[key]
            precondition = (patch.get("metadata") or {}).get("resourceVersion")
            if (
                precondition is not None
                and precondition != current.resource_version
            ):
                raise ConflictError(
                    f"{key} was modified concurrently: resource version "
                    f"{current.resource_version}, expected {precondition}"
                )
            self.patches.append((key, patch))
            pod_spec = (
                (patch.get("spec") or {}).get("template") or {}
            ).get("spec") or {}
            template = current.template.copy(deep=True)
            self._merge(template.containers, pod_spec.get("containers"))
            self._merge(
                template.init_containers, pod_spec.get("initContainers")
            )
            changed = template != current.template
            stored = current.copy(
                deep=True,
                update=dict(
                    template=template,
                    resource_version=self._next_version(),
                    generation=(current.generation or 0) + int(changed),
                ),
            )
            self._objects[key] = stored
            return Response(result=stored.copy(deep=True))

    def _merge(
        self,
        containers: list[Container],
        patch: list[dict[str, Any]] | None,
    ) -> None:
        # strategic merge: list entries are merged by name
        for item in patch or []:
            for container in containers:
                if container.name == item["name"]:
                    container.image = item.get("image", container.image)
                    break
            else:
                containers.append(Container.from_dict(item))

    def record_event(
        self,
        workload: Workload,
        type: EventType,
        reason: str,
        message: str,
    ) -> Response[ClusterEvent]:
        event = ClusterEvent(
            key=workload.key,
            type=type,
            reason=reason,
            message=message,
            timestamp=time.time(),
        )
        with self._lock:
            self.events.append(event)
        return Response(result=event)

    def list_workloads(self, kind: WorkloadKind) -> Response[WorkloadList]:
        with self._lock:
            items = [
                w.copy(deep=True)
                for k, w in self._objects.items()
                if k.kind == kind
            ]
            version = str(self._version)
        return Response(
            result=WorkloadList(items=items, resource_version=version)
        )

    def watch_workloads(
        self,
        kind: WorkloadKind,
        resource_version: str | None = None,
        timeout_seconds: int | None = None,
    ) -> Response[Iterator[WatchEvent]]:
        # no change feed: replays objects newer than resource_version
        since = int(resource_version or 0)
        with self._lock:
            events = [
                WatchEvent(type="MODIFIED", workload=w.copy(deep=True))
                for k, w in self._objects.items()
                if k.kind == kind and int(w.resource_version or 0) > since
            ]
        events.sort(key=lambda e: int(e.workload.resource_version or 0))
        return Response(result=iter(events))

    def close(self) -> Response[None]:
        return Response(result=None)
