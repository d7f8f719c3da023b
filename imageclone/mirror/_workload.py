from __future__ import annotations

import uuid

from imageclone.compute.container_registry import ContainerRegistry
from imageclone.compute.kubernetes import (
    EventType,
    Kubernetes,
    Workload,
    WorkloadKey,
    WorkloadKind,
)
from imageclone.core import Context, get_logger
from imageclone.core.exceptions import NotFoundError
from imageclone.image import Registry

from ._models import ReconcileResult, ReconcileStatus, RewriteResult
from ._template import PodTemplateReconciler

logger = get_logger(__name__)

FAILED_COPYING_IMAGES = "FailedCopyingImages"


class WorkloadReconciler:
    """Runs single reconciliation attempts for workloads.

    An attempt reads the workload, mirrors its images and commits the
    rewritten template with one patch guarded by the resource version that
    was read. Nothing is written when any image fails, so a workload never
    ends up pointing at an image that was not copied. Attempts for the same
    workload must not overlap; the controller's work queue guarantees that.
    """

    kubernetes: Kubernetes
    template_reconciler: PodTemplateReconciler

    def __init__(
        self,
        kubernetes: Kubernetes,
        container_registry: ContainerRegistry,
        backup_registry: Registry,
    ):
        self.kubernetes = kubernetes
        self.template_reconciler = PodTemplateReconciler(
            container_registry=container_registry,
            backup_registry=backup_registry,
        )

    @property
    def backup_registry(self) -> Registry:
        return self.template_reconciler.backup_registry

    def _init_context(self, context: Context | None) -> Context:
        if context is None:
            return Context(id=str(uuid.uuid4()))
        return context

    def _failure_event(self, workload: Workload, result: RewriteResult):
        return dict(
            workload=workload,
            type=EventType.WARNING,
            reason=FAILED_COPYING_IMAGES,
            message=str(result.error),
        )

    def _report_failure(
        self, workload: Workload, result: RewriteResult, context: Context
    ) -> None:
        try:
            self.kubernetes.record_event(
                **self._failure_event(workload, result), __context__=context
            )
        except Exception as e:
            # the copy failure is what gets retried and reported
            logger.warning(
                "Failed recording event for %s: %s", workload.key, e
            )

    async def _areport_failure(
        self, workload: Workload, result: RewriteResult, context: Context
    ) -> None:
        try:
            await self.kubernetes.arecord_event(
                **self._failure_event(workload, result), __context__=context
            )
        except Exception as e:
            logger.warning(
                "Failed recording event for %s: %s", workload.key, e
            )

    def _needs_patch(
        self,
        workload: Workload,
        before: Workload,
        context: Context,
    ) -> bool:
        if workload == before:
            logger.debug("Images of %s are already mirrored", workload.key)
            return False
        context.raise_if_cancelled(f"patching {workload.key}")
        logger.info("Patching images in %s", workload.key)
        return True

    def reconcile(
        self,
        key: WorkloadKey,
        context: Context | None = None,
    ) -> ReconcileResult:
        """Run one attempt for a workload.

        Args:
            key: Workload to reconcile.
            context: Attempt context carrying the cancellation signal.

        Returns:
            What the attempt did.

        Raises:
            ParseError: An image reference is malformed.
            TransferError: An image could not be copied.
            ConflictError: The workload changed since it was read.
            CancelledError: The attempt was cancelled.
        """
        context = self._init_context(context)
        context.raise_if_cancelled(f"reading {key}")
        try:
            workload = self.kubernetes.get_workload(
                key=key, __context__=context
            ).result
        except NotFoundError:
            logger.info("Object is gone, stop reconciling %s", key)
            return ReconcileResult(key=key, status=ReconcileStatus.NOT_FOUND)

        before = workload.copy(deep=True)
        result = self.template_reconciler.rewrite(
            workload.get_pod_template(), context
        )
        if result.failed:
            self._report_failure(before, result, context)
            raise result.error  # type: ignore[misc]
        if not self._needs_patch(workload, before, context):
            return ReconcileResult(
                key=key, status=ReconcileStatus.UNCHANGED, rewrite=result
            )
        self.kubernetes.patch_workload(
            key=key, patch=workload.build_patch(before), __context__=context
        )
        return ReconcileResult(
            key=key, status=ReconcileStatus.COMMITTED, rewrite=result
        )

    async def areconcile(
        self,
        key: WorkloadKey,
        context: Context | None = None,
    ) -> ReconcileResult:
        context = self._init_context(context)
        context.raise_if_cancelled(f"reading {key}")
        try:
            response = await self.kubernetes.aget_workload(
                key=key, __context__=context
            )
        except NotFoundError:
            logger.info("Object is gone, stop reconciling %s", key)
            return ReconcileResult(key=key, status=ReconcileStatus.NOT_FOUND)

        workload = response.result
        before = workload.copy(deep=True)
        result = await self.template_reconciler.arewrite(
            workload.get_pod_template(), context
        )
        if result.failed:
            await self._areport_failure(before, result, context)
            raise result.error  # type: ignore[misc]
        if not self._needs_patch(workload, before, context):
            return ReconcileResult(
                key=key, status=ReconcileStatus.UNCHANGED, rewrite=result
            )
        await self.kubernetes.apatch_workload(
            key=key, patch=workload.build_patch(before), __context__=context
        )
        return ReconcileResult(
            key=key, status=ReconcileStatus.COMMITTED, rewrite=result
        )

    def reconcile_deployment(
        self, namespace: str, name: str, context: Context | None = None
    ) -> ReconcileResult:
        return self.reconcile(
            WorkloadKey(
                kind=WorkloadKind.DEPLOYMENT, namespace=namespace, name=name
            ),
            context,
        )

    def reconcile_daemon_set(
        self, namespace: str, name: str, context: Context | None = None
    ) -> ReconcileResult:
        return self.reconcile(
            WorkloadKey(
                kind=WorkloadKind.DAEMON_SET, namespace=namespace, name=name
            ),
            context,
        )

    async def areconcile_deployment(
        self, namespace: str, name: str, context: Context | None = None
    ) -> ReconcileResult:
        return await self.areconcile(
            WorkloadKey(
                kind=WorkloadKind.DEPLOYMENT, namespace=namespace, name=name
            ),
            context,
        )

    async def areconcile_daemon_set(
        self, namespace: str, name: str, context: Context | None = None
    ) -> ReconcileResult:
        return await self.areconcile(
            WorkloadKey(
                kind=WorkloadKind.DAEMON_SET, namespace=namespace, name=name
            ),
            context,
        )
