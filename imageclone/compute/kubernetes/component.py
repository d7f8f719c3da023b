from typing import Any, Iterator

from imageclone.core import Component, Response, operation

from ._models import (
    ClusterEvent,
    EventType,
    WatchEvent,
    Workload,
    WorkloadKey,
    WorkloadKind,
    WorkloadList,
)


class Kubernetes(Component):
    def __init__(self, **kwargs):
        """Initialize."""
        super().__init__(**kwargs)

    @operation()
    def get_workload(self, key: WorkloadKey) -> Response[Workload]:
        """Read a workload.

        Args:
            key: Workload identity.

        Returns:
            Workload as currently stored.

        Raises:
            NotFoundError: The workload does not exist.
        """
        ...

    @operation()
    def patch_workload(
        self,
        key: WorkloadKey,
        patch: dict[str, Any],
    ) -> Response[Workload]:
        """Apply a strategic merge patch to a workload.

        Args:
            key: Workload identity.
            patch: Patch body. ``metadata.resourceVersion`` is a
                precondition on the stored version.

        Returns:
            Workload after the patch.

        Raises:
            ConflictError: The stored version differs from the precondition.
            NotFoundError: The workload does not exist.
        """
        ...

    @operation()
    def record_event(
        self,
        workload: Workload,
        type: EventType,
        reason: str,
        message: str,
    ) -> Response[ClusterEvent]:
        """Attach an event to a workload.

        Args:
            workload: Workload the event refers to.
            type: Event severity.
            reason: Short machine readable reason.
            message: Human readable message.

        Returns:
            Recorded event.
        """
        ...

    @operation()
    def list_workloads(self, kind: WorkloadKind) -> Response[WorkloadList]:
        """List workloads of one kind across all namespaces.

        Args:
            kind: Workload kind.

        Returns:
            Workloads and the list resource version.
        """
        ...

    @operation()
    def watch_workloads(
        self,
        kind: WorkloadKind,
        resource_version: str | None = None,
        timeout_seconds: int | None = None,
    ) -> Response[Iterator[WatchEvent]]:
        """Stream changes of workloads of one kind.

        Args:
            kind: Workload kind.
            resource_version: Version to start watching from.
            timeout_seconds: Server side timeout of the stream.

        Returns:
            Iterator of watch events.

        Raises:
            GoneError: The resource version is too old to watch from.
        """
        ...

    @operation()
    def close(self) -> Response[None]:
        """Close the client."""
        ...

    @operation()
    async def aget_workload(self, key: WorkloadKey) -> Response[Workload]:
        """Read a workload.

        Args:
            key: Workload identity.

        Returns:
            Workload as currently stored.

        Raises:
            NotFoundError: The workload does not exist.
        """
        ...

    @operation()
    async def apatch_workload(
        self,
        key: WorkloadKey,
        patch: dict[str, Any],
    ) -> Response[Workload]:
        """Apply a strategic merge patch to a workload.

        Args:
            key: Workload identity.
            patch: Patch body.

        Returns:
            Workload after the patch.

        Raises:
            ConflictError: The stored version differs from the precondition.
            NotFoundError: The workload does not exist.
        """
        ...

    @operation()
    async def arecord_event(
        self,
        workload: Workload,
        type: EventType,
        reason: str,
        message: str,
    ) -> Response[ClusterEvent]:
        """Attach an event to a workload."""
        ...

    @operation()
    async def alist_workloads(
        self, kind: WorkloadKind
    ) -> Response[WorkloadList]:
        """List workloads of one kind across all namespaces."""
        ...

    @operation()
    async def aclose(self) -> Response[None]:
        """Close the client."""
        ...
