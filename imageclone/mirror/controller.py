"""
Watch driven controller mirroring workload images.

One thread per workload kind lists and then watches the cluster, filters
events and feeds workload keys into a shared work queue. Worker threads
take keys from the queue and run reconciliation attempts, re-queueing
failed keys with exponential backoff.
"""

from __future__ import annotations

import random
import threading
import uuid
from typing import Iterable

from imageclone.compute.kubernetes import (
    Kubernetes,
    WatchEvent,
    WorkloadKey,
    WorkloadKind,
)
from imageclone.core import Context, get_logger
from imageclone.core.exceptions import CancelledError, GoneError

from ._filter import NamespaceFilter
from ._queue import ShutDownError, WorkQueue
from ._workload import WorkloadReconciler

logger = get_logger(__name__)

WATCH_BASE_BACKOFF = 1.0
WATCH_MAX_BACKOFF = 30.0


class Controller:
    """Runs the reconciler for every eligible Deployment and DaemonSet.

    Attributes:
        reconciler: Workload reconciler.
        kubernetes: Cluster access used for listing and watching.
        namespace_filter: Namespaces that are never reconciled.
        kinds: Workload kinds to watch.
        workers: Number of concurrent reconciliation workers.
        queue: Work queue of workload keys.
    """

    def __init__(
        self,
        reconciler: WorkloadReconciler,
        kubernetes: Kubernetes,
        namespace_filter: NamespaceFilter,
        kinds: Iterable[WorkloadKind] = (
            WorkloadKind.DEPLOYMENT,
            WorkloadKind.DAEMON_SET,
        ),
        workers: int = 1,
        queue: WorkQueue[WorkloadKey] | None = None,
        watch_timeout: int = 60,
        poll_interval: float = 1.0,
    ):
        self.reconciler = reconciler
        self.kubernetes = kubernetes
        self.namespace_filter = namespace_filter
        self.kinds = list(kinds)
        self.workers = max(1, workers)
        self.queue = queue if queue is not None else WorkQueue()
        self.watch_timeout = watch_timeout
        self.poll_interval = poll_interval
        self._generations: dict[WorkloadKey, int | None] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    def handle_event(self, event: WatchEvent) -> bool:
        """Queue the workload of a watch event when it needs reconciling.

        Additions are always queued. Updates are queued only when the spec
        generation changed, so status updates and the controller's own
        no-op reads do not trigger attempts.

        Returns:
            Whether the workload was queued.
        """
        workload = event.workload
        key = workload.key
        if not self.namespace_filter.eligible(workload.namespace):
            return False
        with self._lock:
            if event.type == "DELETED":
                self._generations.pop(key, None)
                self.queue.forget(key)
                return False
            if event.type not in ("ADDED", "MODIFIED"):
                return False
            seen = key in self._generations
            previous = self._generations.get(key)
            self._generations[key] = workload.generation
        if (
            event.type == "MODIFIED"
            and seen
            and previous == workload.generation
        ):
            return False
        self.queue.add(key)
        return True

    def process_next(self, timeout: float | None = None) -> bool:
        """Run one attempt for the next queued key.

        Returns:
            Whether a key was processed.

        Raises:
            ShutDownError: The queue was shut down.
        """
        key = self.queue.get(timeout=timeout)
        if key is None:
            return False
        context = Context(id=str(uuid.uuid4()), cancel_event=self._stop)
        try:
            self.reconciler.reconcile(key, context)
        except CancelledError as e:
            logger.info("Stopped reconciling %s: %s", key, e)
        except Exception as e:
            delay = self.queue.add_rate_limited(key)
            logger.warning(
                "Reconciling %s failed (attempt %d), retrying in %.3fs: %s",
                key,
                self.queue.num_requeues(key),
                delay,
                e,
            )
        else:
            self.queue.forget(key)
        finally:
            self.queue.done(key)
        return True

    def _relist(self, kind: WorkloadKind) -> str | None:
        response = self.kubernetes.list_workloads(kind=kind)
        for workload in response.result.items:
            self.handle_event(WatchEvent(type="ADDED", workload=workload))
        return response.result.resource_version

    def watch(self, kind: WorkloadKind) -> None:
        """List and watch one workload kind until the controller stops."""
        backoff = WATCH_BASE_BACKOFF
        resource_version: str | None = None
        while not self._stop.is_set():
            try:
                if resource_version is None:
                    resource_version = self._relist(kind)
                stream = self.kubernetes.watch_workloads(
                    kind=kind,
                    resource_version=resource_version,
                    timeout_seconds=self.watch_timeout,
                ).result
                received = 0
                for event in stream:
                    if self._stop.is_set():
                        break
                    received += 1
                    resource_version = (
                        event.workload.resource_version or resource_version
                    )
                    self.handle_event(event)
                backoff = WATCH_BASE_BACKOFF
                if not received:
                    self._stop.wait(self.poll_interval)
            except GoneError:
                logger.info("Watch of %s expired, listing again", kind.value)
                resource_version = None
            except Exception as e:
                jittered = backoff * (0.5 + random.random())
                logger.warning(
                    "Watching %s failed, retrying in %.1fs: %s",
                    kind.value,
                    jittered,
                    e,
                )
                self._stop.wait(timeout=jittered)
                backoff = min(backoff * 2, WATCH_MAX_BACKOFF)

    def work(self) -> None:
        """Process queued keys until the queue shuts down."""
        while True:
            try:
                self.process_next(timeout=self.poll_interval)
            except ShutDownError:
                return

    def start(self) -> None:
        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self.watch,
                args=(kind,),
                name=f"watch-{kind.value}",
                daemon=True,
            )
            for kind in self.kinds
        ] + [
            threading.Thread(target=self.work, name=f"worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            "Started watching %s with %d workers",
            ", ".join(kind.value for kind in self.kinds),
            self.workers,
        )

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Run until ``stop_event`` is set or ``stop`` is called."""
        self.start()
        stop_event = stop_event or self._stop
        try:
            while not (
                stop_event.wait(self.poll_interval) or self._stop.is_set()
            ):
                pass
        finally:
            self.stop()

    def stop(self, timeout: float | None = 10.0) -> None:
        """Stop watching, cancel running attempts and wait for threads."""
        self._stop.set()
        self.queue.shut_down()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout=timeout)
        self._threads = []
        logger.info("Controller stopped")
